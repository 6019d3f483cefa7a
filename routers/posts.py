"""Feed post (part request) endpoints.

The feed is ordered urgent first, then by most recent activity, and paginated with
an opaque cursor. Each page carries the authors it references, minus the ones
the caller already holds.
Security: only the author may edit or delete a post.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
from datetime import datetime, UTC

from config import settings
from database_adapter import SCHEMA_VERSION
from models.common import PartCategory, PostStatus
from models.posts import FeedPostCreate, FeedPostUpdate, FeedPostResponse, FeedPage
from models.users import UserResponse
from routers.listings import normalize_ids, page_size_or_default
from services.auth import ensure_owner, require_profile
from services.database import get_db
from services.documents import parse_document, parse_documents
from services.enrichment import resolve_related
from services.pagination import FEED_SORT, InvalidCursor, fetch_page
from services.sanitizer import sanitize_required, sanitize_text
from services.session import UserSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["posts"])


def get_post_row(db, post_id: str) -> dict:
    response = db.table("feed_posts").select("*").eq("id", post_id).execute()
    if not response.data:
        raise HTTPException(status_code=404, detail="Post not found")
    return response.data[0]


@router.post("", response_model=FeedPostResponse, status_code=201)
async def create_post(
    post: FeedPostCreate,
    session: UserSession = Depends(require_profile),
    db = Depends(get_db),
):
    """Post a part request or social sale to the feed."""
    now = datetime.now(UTC).isoformat()
    post_data = post.model_dump(mode="json")
    for field in ("part_name", "car_model"):
        post_data[field] = sanitize_required(post_data[field], field)
    post_data["description"] = sanitize_text(post_data["description"])
    post_data.update({
        "author_id": session.user_id,
        "market_id": settings.DEFAULT_MARKET_ID,
        "response_count": 0,
        "interested_count": 0,
        "status": PostStatus.ACTIVE.value,
        "schema_version": SCHEMA_VERSION,
        "last_activity_at": now,
        "created_at": now,
    })

    response = db.table("feed_posts").insert(post_data).execute()
    if not response.data:
        raise HTTPException(status_code=400, detail="Failed to create post")
    return parse_document(FeedPostResponse, response.data[0])


@router.get("", response_model=FeedPage)
async def get_feed(
    category: Optional[PartCategory] = None,
    cursor: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=50),
    known_authors: Optional[list[str]] = Query(None),
    db = Depends(get_db),
):
    """
    One page of the active feed.

    Pass the previous page's next_cursor to continue; next_cursor is null on the
    last page. Authors listed in known_authors are left out of `authors`.
    """
    query = (
        db.table("feed_posts")
        .select("*")
        .eq("market_id", settings.DEFAULT_MARKET_ID)
        .eq("status", PostStatus.ACTIVE.value)
    )
    if category:
        query = query.eq("category", category.value)

    try:
        rows, next_cursor = fetch_page(query, FEED_SORT, page_size_or_default(limit), cursor)
    except InvalidCursor as e:
        raise HTTPException(status_code=400, detail=str(e))

    authors = resolve_related(db, rows, "author_id", "users", known=normalize_ids(known_authors))
    return FeedPage(
        items=parse_documents(FeedPostResponse, rows),
        authors={k: parse_document(UserResponse, v) for k, v in authors.items()},
        next_cursor=next_cursor,
    )


@router.get("/{post_id}", response_model=FeedPostResponse)
async def get_post(
    post_id: str,
    db = Depends(get_db),
):
    """Get a single post by ID"""
    return parse_document(FeedPostResponse, get_post_row(db, post_id))


@router.patch("/{post_id}", response_model=FeedPostResponse)
async def update_post(
    post_id: str,
    update: FeedPostUpdate,
    session: UserSession = Depends(require_profile),
    db = Depends(get_db),
):
    """Edit a post or mark it resolved (author only); bumps last_activity_at."""
    existing = get_post_row(db, post_id)
    ensure_owner(session, existing.get("author_id"), "post")

    update_data = update.model_dump(mode="json", exclude_unset=True)
    for field in ("part_name", "car_model"):
        if field in update_data:
            update_data[field] = sanitize_required(update_data[field], field)
    if "description" in update_data:
        update_data["description"] = sanitize_text(update_data["description"])
    update_data["last_activity_at"] = datetime.now(UTC).isoformat()

    response = db.table("feed_posts").update(update_data).eq("id", post_id).execute()
    if not response.data:
        raise HTTPException(status_code=400, detail="Failed to update post")
    return parse_document(FeedPostResponse, response.data[0])


@router.delete("/{post_id}", status_code=204)
async def delete_post(
    post_id: str,
    session: UserSession = Depends(require_profile),
    db = Depends(get_db),
):
    """Delete a post (author only)"""
    existing = get_post_row(db, post_id)
    ensure_owner(session, existing.get("author_id"), "post")

    db.table("feed_posts").delete().eq("id", post_id).execute()
    logger.info(f"Post {post_id} deleted by {session.user_id}")
    return None


@router.post("/{post_id}/interested", response_model=FeedPostResponse)
async def mark_interested(
    post_id: str,
    db = Depends(get_db),
):
    """
    Count one "interested" tap.

    Every call increments; repeated taps from the same user are counted again.
    """
    updated = db.increment("feed_posts", post_id, "interested_count", bump_activity=True)
    if updated is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return parse_document(FeedPostResponse, updated)
