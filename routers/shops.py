"""Shop endpoints.

A shop belongs to exactly one user; creating it links the owner's profile to it.
Security: only the owner may edit a shop. `verified` is never client-settable.
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
from datetime import datetime, UTC

from config import settings
from database_adapter import SCHEMA_VERSION
from models.common import ListingStatus, LocationZone, PartCategory
from models.listings import ListingPage
from models.responses import ContactLink
from models.shops import ShopCreate, ShopUpdate, ShopResponse
from routers.listings import build_listing_page, normalize_ids
from services.auth import ensure_owner, require_profile
from services.database import get_db
from services.documents import parse_document, parse_documents
from services.sanitizer import sanitize_required, sanitize_text
from services.session import ProfileChanged, UserSession, get_session_events
from services.whatsapp import build_shop_contact_message, build_whatsapp_link

router = APIRouter(prefix="/api/shops", tags=["shops"])


def get_shop_row(db, shop_id: str) -> dict:
    response = db.table("shops").select("*").eq("id", shop_id).execute()
    if not response.data:
        raise HTTPException(status_code=404, detail="Shop not found")
    return response.data[0]


@router.post("", response_model=ShopResponse, status_code=201)
async def create_shop(
    shop: ShopCreate,
    session: UserSession = Depends(require_profile),
    db = Depends(get_db),
):
    """Set up the caller's shop and link it to their profile."""
    if session.profile.get("shop_id"):
        raise HTTPException(status_code=409, detail="You already have a shop")

    now = datetime.now(UTC).isoformat()
    shop_data = shop.model_dump(mode="json")
    shop_data["name"] = sanitize_required(shop_data["name"], "name")
    shop_data["description"] = sanitize_text(shop_data["description"])
    shop_data.update({
        "owner_id": session.user_id,
        "market_id": settings.DEFAULT_MARKET_ID,
        "verified": False,
        "schema_version": SCHEMA_VERSION,
        "last_activity_at": now,
        "created_at": now,
    })

    response = db.table("shops").insert(shop_data).execute()
    if not response.data:
        raise HTTPException(status_code=400, detail="Failed to create shop")
    created = response.data[0]

    db.table("users").update({"shop_id": created["id"], "last_active_at": now}).eq("id", session.user_id).execute()
    get_session_events().publish(ProfileChanged(user_id=session.user_id))

    return parse_document(ShopResponse, created)


@router.get("", response_model=list[ShopResponse])
async def get_shops(
    zone: Optional[LocationZone] = None,
    category: Optional[PartCategory] = None,
    limit: int = Query(50, ge=1, le=100),
    db = Depends(get_db),
):
    """Shops in the market, optionally in one zone or stocking one category."""
    query = db.table("shops").select("*").eq("market_id", settings.DEFAULT_MARKET_ID)
    if zone:
        query = query.eq("zone", zone.value)
    if category:
        query = query.contains("categories", [category.value])

    response = query.order("last_activity_at", desc=True).limit(limit).execute()
    return parse_documents(ShopResponse, response.data)


@router.get("/{shop_id}", response_model=ShopResponse)
async def get_shop(
    shop_id: str,
    db = Depends(get_db),
):
    """Get a single shop by ID"""
    return parse_document(ShopResponse, get_shop_row(db, shop_id))


@router.patch("/{shop_id}", response_model=ShopResponse)
async def update_shop(
    shop_id: str,
    update: ShopUpdate,
    session: UserSession = Depends(require_profile),
    db = Depends(get_db),
):
    """Update shop details (owner only)"""
    existing = get_shop_row(db, shop_id)
    ensure_owner(session, existing.get("owner_id"), "shop")

    update_data = update.model_dump(mode="json", exclude_unset=True)
    if "name" in update_data:
        update_data["name"] = sanitize_required(update_data["name"], "name")
    if "description" in update_data:
        update_data["description"] = sanitize_text(update_data["description"])
    update_data["last_activity_at"] = datetime.now(UTC).isoformat()

    response = db.table("shops").update(update_data).eq("id", shop_id).execute()
    if not response.data:
        raise HTTPException(status_code=400, detail="Failed to update shop")
    return parse_document(ShopResponse, response.data[0])


@router.get("/{shop_id}/listings", response_model=ListingPage)
async def get_shop_listings(
    shop_id: str,
    cursor: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=50),
    known_sellers: Optional[list[str]] = Query(None),
    db = Depends(get_db),
):
    """Active listings of one shop, queried by shop id, newest first."""
    get_shop_row(db, shop_id)
    query = (
        db.table("marketplace_listings")
        .select("*")
        .eq("shop_id", shop_id)
        .eq("status", ListingStatus.ACTIVE.value)
    )
    return build_listing_page(db, query, cursor, limit, normalize_ids(known_sellers), [shop_id])


@router.get("/{shop_id}/contact", response_model=ContactLink)
async def contact_shop(
    shop_id: str,
    db = Depends(get_db),
):
    """WhatsApp link to the shop with a pre-filled enquiry."""
    shop = get_shop_row(db, shop_id)
    url = build_whatsapp_link(
        shop["whatsapp_number"],
        build_shop_contact_message(shop["name"]),
        settings.COUNTRY_CODE,
    )
    return ContactLink(url=url)
