"""Abuse reports. Append-only; review happens outside the API."""
import logging
from fastapi import APIRouter, Depends, HTTPException
from datetime import datetime, UTC

from database_adapter import SCHEMA_VERSION
from models.common import ReportStatus
from models.reports import ReportCreate, ReportResponse
from services.auth import get_session
from services.database import get_db
from services.documents import parse_document
from services.sanitizer import sanitize_text
from services.session import UserSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.post("", response_model=ReportResponse, status_code=201)
async def create_report(
    report: ReportCreate,
    session: UserSession = Depends(get_session),
    db = Depends(get_db),
):
    """Report a post, response, user or shop"""
    report_data = report.model_dump(mode="json")
    if report_data.get("description"):
        report_data["description"] = sanitize_text(report_data["description"])
    report_data.update({
        "reporter_id": session.user_id,
        "status": ReportStatus.PENDING.value,
        "schema_version": SCHEMA_VERSION,
        "created_at": datetime.now(UTC).isoformat(),
    })

    response = db.table("reports").insert(report_data).execute()
    if not response.data:
        raise HTTPException(status_code=400, detail="Failed to create report")

    logger.info(f"Report filed on {report.target_type.value} {report.target_id} ({report.reason.value})")
    return parse_document(ReportResponse, response.data[0])
