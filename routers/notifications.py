"""Notification inbox endpoints for the signed-in user."""
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional

from config import settings
from models.notifications import NotificationResponse, UnreadCount
from services.auth import ensure_owner, get_session
from services.database import get_db
from services.documents import parse_document, parse_documents
from services.notifications import publish_unread_count, unread_count
from services.session import UserSession

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
async def get_notifications(
    limit: Optional[int] = Query(None, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: UserSession = Depends(get_session),
    db = Depends(get_db),
):
    """Own notifications, newest first"""
    limit = limit or settings.DEFAULT_PAGE_SIZE
    response = (
        db.table("notifications")
        .select("*")
        .eq("user_id", session.user_id)
        .order("created_at", desc=True)
        .order("id", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )
    return parse_documents(NotificationResponse, response.data)


@router.get("/unread-count", response_model=UnreadCount)
async def get_unread_count(
    session: UserSession = Depends(get_session),
    db = Depends(get_db),
):
    return UnreadCount(count=unread_count(db, session.user_id))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: str,
    session: UserSession = Depends(get_session),
    db = Depends(get_db),
):
    """Mark one notification read (recipient only)"""
    existing = db.table("notifications").select("*").eq("id", notification_id).execute()
    if not existing.data:
        raise HTTPException(status_code=404, detail="Notification not found")
    ensure_owner(session, existing.data[0].get("user_id"), "notification")

    response = db.table("notifications").update({"read": True}).eq("id", notification_id).execute()
    if not response.data:
        raise HTTPException(status_code=400, detail="Failed to update notification")

    publish_unread_count(db, session.user_id)
    return parse_document(NotificationResponse, response.data[0])
