"""Responses to feed posts and listings.

Creating a response writes the response, then bumps the parent's counter and
activity time, then notifies the parent's author. These are separate writes:
if a later step fails the response still exists and the failure is logged.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException
from datetime import datetime, UTC
from typing import Optional

from config import settings
from database_adapter import SCHEMA_VERSION
from models.common import ActivitySignalType, ResponseTarget
from models.responses import ContactLink, PostResponseCreate, PostResponseRecord
from services.auth import ensure_owner, get_session_optional, require_profile
from services.database import get_db
from services.documents import parse_document, parse_documents
from services.notifications import notify_response
from services.sanitizer import sanitize_required
from services.session import UserSession
from services.whatsapp import build_response_whatsapp_message, build_whatsapp_link

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/responses", tags=["responses"])

PARENT_TABLES = {
    ResponseTarget.FEED: "feed_posts",
    ResponseTarget.MARKETPLACE: "marketplace_listings",
}


def get_parent_row(db, post_id: str, post_type: ResponseTarget) -> dict:
    response = db.table(PARENT_TABLES[post_type]).select("*").eq("id", post_id).execute()
    if not response.data:
        raise HTTPException(status_code=404, detail="Post not found")
    return response.data[0]


def touch_parent(db, parent_id: str, post_type: ResponseTarget):
    """Count the response on the parent and bump its activity time."""
    if post_type == ResponseTarget.FEED:
        db.increment("feed_posts", parent_id, "response_count", bump_activity=True)
    else:
        db.table("marketplace_listings").update(
            {"last_activity_at": datetime.now(UTC).isoformat()}
        ).eq("id", parent_id).execute()


@router.post("", response_model=PostResponseRecord, status_code=201)
async def create_response(
    payload: PostResponseCreate,
    session: UserSession = Depends(require_profile),
    db = Depends(get_db),
):
    """Respond to a part request or listing, e.g. "I have it, UGX 120,000"."""
    parent = get_parent_row(db, payload.post_id, payload.post_type)

    if payload.shop_id:
        shop = db.table("shops").select("owner_id").eq("id", payload.shop_id).execute()
        if not shop.data:
            raise HTTPException(status_code=404, detail="Shop not found")
        ensure_owner(session, shop.data[0].get("owner_id"), "shop")

    response_data = payload.model_dump(mode="json")
    response_data.update({
        "message": sanitize_required(payload.message, "message"),
        "responder_id": session.user_id,
        "whatsapp_taps": 0,
        "schema_version": SCHEMA_VERSION,
        "created_at": datetime.now(UTC).isoformat(),
    })

    response = db.table("post_responses").insert(response_data).execute()
    if not response.data:
        raise HTTPException(status_code=400, detail="Failed to create response")
    created = response.data[0]

    try:
        touch_parent(db, parent["id"], payload.post_type)
    except Exception as e:
        logger.error(f"Response {created['id']} saved but parent {parent['id']} was not updated: {e}", exc_info=True)

    try:
        notify_response(db, parent, payload.post_type, session)
    except Exception as e:
        logger.error(f"Notification for response {created['id']} failed: {e}", exc_info=True)

    return parse_document(PostResponseRecord, created)


@router.get("", response_model=list[PostResponseRecord])
async def get_responses(
    post_id: str,
    db = Depends(get_db),
):
    """Responses to one post, oldest first."""
    response = (
        db.table("post_responses")
        .select("*")
        .eq("post_id", post_id)
        .order("created_at")
        .order("id")
        .execute()
    )
    return parse_documents(PostResponseRecord, response.data)


@router.post("/{response_id}/whatsapp-tap", response_model=ContactLink)
async def tap_whatsapp(
    response_id: str,
    session: Optional[UserSession] = Depends(get_session_optional),
    db = Depends(get_db),
):
    """Record a WhatsApp tap on a response and return the link to the responder."""
    existing = db.table("post_responses").select("*").eq("id", response_id).execute()
    if not existing.data:
        raise HTTPException(status_code=404, detail="Response not found")
    record = existing.data[0]

    responder = db.table("users").select("*").eq("id", record["responder_id"]).execute()
    if not responder.data or not responder.data[0].get("whatsapp_number"):
        raise HTTPException(status_code=404, detail="Responder has no WhatsApp number")
    responder_row = responder.data[0]

    db.increment("post_responses", response_id, "whatsapp_taps")
    db.table("activity_signals").insert({
        "type": ActivitySignalType.WHATSAPP_TAP.value,
        "reference_id": response_id,
        "user_id": session.user_id if session else None,
        "signal_metadata": {"post_id": record["post_id"], "post_type": record["post_type"]},
        "schema_version": SCHEMA_VERSION,
        "created_at": datetime.now(UTC).isoformat(),
    }).execute()

    parent_type = ResponseTarget(record["post_type"])
    parent = db.table(PARENT_TABLES[parent_type]).select("*").eq("id", record["post_id"]).execute()
    if parent.data and parent_type == ResponseTarget.FEED:
        message = build_response_whatsapp_message(
            parent.data[0]["part_name"], parent.data[0].get("car_model"), responder_row.get("display_name"))
    elif parent.data:
        message = build_response_whatsapp_message(parent.data[0]["title"], None, responder_row.get("display_name"))
    else:
        message = None

    url = build_whatsapp_link(responder_row["whatsapp_number"], message, settings.COUNTRY_CODE)
    return ContactLink(url=url)
