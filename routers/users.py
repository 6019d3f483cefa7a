"""User profile endpoints.

Onboarding creates the profile for the signed-in phone identity; the profile id
is always the auth identity id, never a client-supplied value.
Security: users can only edit their own profile.
"""
from fastapi import APIRouter, Depends, HTTPException
from datetime import datetime, UTC

from config import settings
from database_adapter import SCHEMA_VERSION
from models.posts import FeedPostResponse
from models.users import UserCreate, UserUpdate, UserResponse
from services.auth import get_session, require_profile
from services.database import get_db
from services.documents import parse_document, parse_documents
from services.sanitizer import sanitize_required
from services.session import ProfileChanged, UserSession, get_session_events

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=201)
async def create_profile(
    user: UserCreate,
    session: UserSession = Depends(get_session),
    db = Depends(get_db),
):
    """Create the marketplace profile for the signed-in identity (onboarding)."""
    if session.onboarded:
        raise HTTPException(status_code=409, detail="Profile already exists")

    now = datetime.now(UTC).isoformat()
    user_data = user.model_dump(mode="json")
    user_data["display_name"] = sanitize_required(user_data["display_name"], "display_name")
    user_data.update({
        "id": session.user_id,
        "market_id": settings.DEFAULT_MARKET_ID,
        "schema_version": SCHEMA_VERSION,
        "created_at": now,
        "last_active_at": now,
    })

    response = db.table("users").insert(user_data).execute()
    if not response.data:
        raise HTTPException(status_code=400, detail="Failed to create profile")

    get_session_events().publish(ProfileChanged(user_id=session.user_id))
    return parse_document(UserResponse, response.data[0])


@router.patch("/me", response_model=UserResponse)
async def update_profile(
    update: UserUpdate,
    session: UserSession = Depends(require_profile),
    db = Depends(get_db),
):
    """Edit own profile; bumps last_active_at."""
    update_data = update.model_dump(mode="json", exclude_unset=True)
    if "display_name" in update_data:
        update_data["display_name"] = sanitize_required(update_data["display_name"], "display_name")
    update_data["last_active_at"] = datetime.now(UTC).isoformat()

    response = db.table("users").update(update_data).eq("id", session.user_id).execute()
    if not response.data:
        raise HTTPException(status_code=400, detail="Failed to update profile")

    get_session_events().publish(ProfileChanged(user_id=session.user_id))
    return parse_document(UserResponse, response.data[0])


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    db = Depends(get_db),
):
    """Get a public profile by ID"""
    response = db.table("users").select("*").eq("id", user_id).execute()
    if not response.data:
        raise HTTPException(status_code=404, detail="User not found")
    return parse_document(UserResponse, response.data[0])


@router.get("/{user_id}/posts", response_model=list[FeedPostResponse])
async def get_user_posts(
    user_id: str,
    db = Depends(get_db),
):
    """A user's own requests, newest first, any status."""
    response = (
        db.table("feed_posts")
        .select("*")
        .eq("author_id", user_id)
        .order("created_at", desc=True)
        .limit(50)
        .execute()
    )
    return parse_documents(FeedPostResponse, response.data)
