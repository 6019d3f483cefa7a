"""
Activity signal routes (whatsapp taps, post views, response clicks).
"""
from fastapi import APIRouter, Depends, HTTPException
from typing import Optional
from datetime import datetime, UTC

from database_adapter import SCHEMA_VERSION
from models.activities import ActivitySignalCreate, ActivitySignalResponse
from services.auth import get_session_optional
from services.database import get_db
from services.documents import parse_document
from services.session import UserSession

router = APIRouter(prefix="/api/activity", tags=["activity"])


@router.post("", response_model=ActivitySignalResponse, status_code=201)
async def record_activity(
    signal: ActivitySignalCreate,
    session: Optional[UserSession] = Depends(get_session_optional),
    db = Depends(get_db),
):
    """Record an activity signal; attributed to the caller when signed in"""
    signal_data = {
        "type": signal.type.value,
        "reference_id": signal.reference_id,
        "user_id": session.user_id if session else None,
        "signal_metadata": signal.metadata,  # Use signal_metadata column name
        "schema_version": SCHEMA_VERSION,
        "created_at": datetime.now(UTC).isoformat(),
    }

    response = db.table("activity_signals").insert(signal_data).execute()
    if not response.data:
        raise HTTPException(status_code=400, detail="Failed to record activity")

    return parse_document(ActivitySignalResponse, response.data[0])
