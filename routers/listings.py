"""Marketplace listing endpoints.

Listings are ordered newest first with cursor pagination. Each page carries the
sellers and shops it references, minus the ones the caller already holds.
Security: only the seller may edit a listing; a listing can only be tied to
the seller's own shop.
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
from datetime import datetime, UTC

from config import settings
from database_adapter import SCHEMA_VERSION
from models.common import ListingCondition, ListingStatus, LocationZone, PartCategory
from models.listings import ListingCreate, ListingUpdate, ListingResponse, ListingPage
from models.responses import ContactLink
from models.shops import ShopResponse
from models.users import UserResponse
from services.auth import ensure_owner, require_profile
from services.database import get_db
from services.documents import parse_document, parse_documents
from services.enrichment import resolve_related
from services.pagination import LISTING_SORT, InvalidCursor, fetch_page
from services.sanitizer import sanitize_required, sanitize_text
from services.session import UserSession
from services.whatsapp import build_listing_whatsapp_message, build_whatsapp_link

router = APIRouter(prefix="/api/listings", tags=["listings"])


def normalize_ids(values: Optional[list[str]]) -> list[str]:
    """Flatten query params supporting comma-separated and repeated values."""
    normalized: list[str] = []
    for v in values or []:
        for part in v.split(","):
            item = part.strip()
            if item:
                normalized.append(item)
    return normalized


def page_size_or_default(limit: Optional[int]) -> int:
    return min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)


def build_listing_page(db, query, cursor: Optional[str], limit: Optional[int],
                       known_sellers: list[str], known_shops: list[str]) -> ListingPage:
    try:
        rows, next_cursor = fetch_page(query, LISTING_SORT, page_size_or_default(limit), cursor)
    except InvalidCursor as e:
        raise HTTPException(status_code=400, detail=str(e))

    sellers = resolve_related(db, rows, "seller_id", "users", known=known_sellers)
    shops = resolve_related(db, rows, "shop_id", "shops", known=known_shops)
    return ListingPage(
        items=parse_documents(ListingResponse, rows),
        sellers={k: parse_document(UserResponse, v) for k, v in sellers.items()},
        shops={k: parse_document(ShopResponse, v) for k, v in shops.items()},
        next_cursor=next_cursor,
    )


def get_listing_row(db, listing_id: str) -> dict:
    response = db.table("marketplace_listings").select("*").eq("id", listing_id).execute()
    if not response.data:
        raise HTTPException(status_code=404, detail="Listing not found")
    return response.data[0]


@router.post("", response_model=ListingResponse, status_code=201)
async def create_listing(
    listing: ListingCreate,
    session: UserSession = Depends(require_profile),
    db = Depends(get_db),
):
    """Create a listing for sale (onboarded users only)."""
    if listing.shop_id:
        shop = db.table("shops").select("owner_id").eq("id", listing.shop_id).execute()
        if not shop.data:
            raise HTTPException(status_code=404, detail="Shop not found")
        ensure_owner(session, shop.data[0].get("owner_id"), "shop")

    now = datetime.now(UTC).isoformat()
    listing_data = listing.model_dump(mode="json")
    listing_data["title"] = sanitize_required(listing_data["title"], "title")
    listing_data["description"] = sanitize_text(listing_data["description"])
    listing_data.update({
        "seller_id": session.user_id,
        "currency": "UGX",
        "market_id": settings.DEFAULT_MARKET_ID,
        "engagement_count": 0,
        "status": ListingStatus.ACTIVE.value,
        "schema_version": SCHEMA_VERSION,
        "last_activity_at": now,
        "created_at": now,
    })

    response = db.table("marketplace_listings").insert(listing_data).execute()
    if not response.data:
        raise HTTPException(status_code=400, detail="Failed to create listing")
    return parse_document(ListingResponse, response.data[0])


@router.get("", response_model=ListingPage)
async def get_listings(
    category: Optional[PartCategory] = None,
    condition: Optional[ListingCondition] = None,
    zone: Optional[LocationZone] = None,
    cursor: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=50),
    known_sellers: Optional[list[str]] = Query(None),
    known_shops: Optional[list[str]] = Query(None),
    db = Depends(get_db),
):
    """Active listings in the market, newest first, with optional equality filters."""
    query = (
        db.table("marketplace_listings")
        .select("*")
        .eq("market_id", settings.DEFAULT_MARKET_ID)
        .eq("status", ListingStatus.ACTIVE.value)
    )
    if category:
        query = query.eq("category", category.value)
    if condition:
        query = query.eq("condition", condition.value)
    if zone:
        query = query.eq("location_zone", zone.value)

    return build_listing_page(db, query, cursor, limit, normalize_ids(known_sellers), normalize_ids(known_shops))


@router.get("/{listing_id}", response_model=ListingResponse)
async def get_listing(
    listing_id: str,
    db = Depends(get_db),
):
    """Get a single listing by ID"""
    return parse_document(ListingResponse, get_listing_row(db, listing_id))


@router.patch("/{listing_id}", response_model=ListingResponse)
async def update_listing(
    listing_id: str,
    update: ListingUpdate,
    session: UserSession = Depends(require_profile),
    db = Depends(get_db),
):
    """Update a listing (seller only), e.g. mark it sold."""
    existing = get_listing_row(db, listing_id)
    ensure_owner(session, existing.get("seller_id"), "listing")

    update_data = update.model_dump(mode="json", exclude_unset=True)
    if "title" in update_data:
        update_data["title"] = sanitize_required(update_data["title"], "title")
    if "description" in update_data:
        update_data["description"] = sanitize_text(update_data["description"])
    update_data["last_activity_at"] = datetime.now(UTC).isoformat()

    response = db.table("marketplace_listings").update(update_data).eq("id", listing_id).execute()
    if not response.data:
        raise HTTPException(status_code=400, detail="Failed to update listing")
    return parse_document(ListingResponse, response.data[0])


@router.post("/{listing_id}/contact", response_model=ContactLink)
async def contact_seller(
    listing_id: str,
    db = Depends(get_db),
):
    """Count an engagement and return the WhatsApp link to the seller."""
    listing = get_listing_row(db, listing_id)

    seller = db.table("users").select("whatsapp_number").eq("id", listing["seller_id"]).execute()
    if not seller.data or not seller.data[0].get("whatsapp_number"):
        raise HTTPException(status_code=404, detail="Seller has no WhatsApp number")

    db.increment("marketplace_listings", listing_id, "engagement_count")

    url = build_whatsapp_link(
        seller.data[0]["whatsapp_number"],
        build_listing_whatsapp_message(listing["title"]),
        settings.COUNTRY_CODE,
    )
    return ContactLink(url=url)
