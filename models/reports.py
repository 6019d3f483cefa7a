from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from models.common import ReportReason, ReportStatus, ReportTargetType, VersionedDocument


class ReportCreate(BaseModel):
    target_id: str = Field(..., min_length=1)
    target_type: ReportTargetType
    reason: ReportReason
    description: Optional[str] = Field(None, max_length=1000)


class ReportResponse(VersionedDocument):
    id: str
    reporter_id: str
    target_id: str
    target_type: ReportTargetType
    reason: ReportReason
    description: Optional[str] = None
    status: ReportStatus
    created_at: datetime
