from pydantic import BaseModel
from datetime import datetime

from models.common import NotificationType, VersionedDocument


class NotificationResponse(VersionedDocument):
    id: str
    user_id: str
    type: NotificationType
    title: str
    body: str
    reference_id: str
    reference_type: str
    read: bool = False
    created_at: datetime


class UnreadCount(BaseModel):
    count: int
