"""
Activity signal models for contact and view analytics.
"""
from pydantic import AliasChoices, BaseModel, Field
from typing import Any, Optional
from datetime import datetime

from models.common import ActivitySignalType, VersionedDocument


class ActivitySignalCreate(BaseModel):
    """Request model for recording an activity signal"""
    type: ActivitySignalType
    reference_id: str = Field(..., min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ActivitySignalResponse(VersionedDocument):
    """Response model for an activity signal"""
    id: str
    type: ActivitySignalType
    reference_id: str
    user_id: Optional[str] = None
    # Stored as signal_metadata ('metadata' is reserved by SQLAlchemy)
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("metadata", "signal_metadata"),
    )
    created_at: datetime
