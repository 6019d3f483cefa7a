"""Local notification fan-out.

Notifications are written synchronously, in the same request that triggers
them. There is no retry, batching or push delivery.
"""
import logging
from datetime import datetime, UTC
from typing import Optional

from models.common import NotificationType, ResponseTarget
from services.session import UnreadCountChanged, UserSession, get_session_events

logger = logging.getLogger(__name__)


def parent_owner_id(parent: dict, post_type: ResponseTarget) -> Optional[str]:
    if post_type == ResponseTarget.FEED:
        return parent.get("author_id")
    return parent.get("seller_id")


def unread_count(db, user_id: str) -> int:
    response = db.table("notifications").select("id", count="exact").eq("user_id", user_id).eq("read", False).execute()
    if response.count is not None:
        return response.count
    return len(response.data or [])


def publish_unread_count(db, user_id: str):
    get_session_events().publish(UnreadCountChanged(user_id=user_id, count=unread_count(db, user_id)))


def notify_response(db, parent: dict, post_type: ResponseTarget, responder: UserSession) -> Optional[dict]:
    """
    Write one notification to the parent's author about a new response.

    Nothing is written when the responder is the author.
    """
    recipient = parent_owner_id(parent, post_type)
    if not recipient or recipient == responder.user_id:
        return None

    if post_type == ResponseTarget.FEED:
        body = f"{responder.display_name} responded to your request for {parent.get('part_name')}"
    else:
        body = f"{responder.display_name} responded to your listing {parent.get('title')}"

    response = db.table("notifications").insert({
        "user_id": recipient,
        "type": NotificationType.RESPONSE.value,
        "title": "New Response",
        "body": body,
        "reference_id": parent["id"],
        "reference_type": post_type.value,
        "read": False,
        "created_at": datetime.now(UTC).isoformat(),
    }).execute()

    if not response.data:
        logger.error(f"Failed to write response notification for {post_type.value} {parent['id']}")
        return None

    publish_unread_count(db, recipient)
    return response.data[0]
