"""Text search across posts, listings and shops."""
import re
from fastapi import APIRouter, Depends, Query

from config import settings
from models.common import ListingStatus, PostStatus
from models.listings import ListingResponse
from models.posts import FeedPostResponse
from models.session import SearchResults
from models.shops import ShopResponse
from services.database import get_db
from services.documents import parse_documents

router = APIRouter(prefix="/api/search", tags=["search"])

SEARCH_LIMIT = 20


def clean_search_term(term: str) -> str:
    # Logic-tree syntax characters would split the expression
    return re.sub(r'[,()"*%\\]', " ", term).strip()


def ilike_any(columns: list[str], term: str) -> str:
    """PostgREST `or` tree matching a cleaned `term` as a substring of any column."""
    return ",".join(f'{col}.ilike."*{term}*"' for col in columns)


@router.get("", response_model=SearchResults)
async def search(
    q: str = Query(..., min_length=1, max_length=100),
    db = Depends(get_db),
):
    """Case-insensitive substring search; newest first within each kind"""
    term = clean_search_term(q)
    if not term:
        return SearchResults()

    posts = (
        db.table("feed_posts")
        .select("*")
        .eq("market_id", settings.DEFAULT_MARKET_ID)
        .eq("status", PostStatus.ACTIVE.value)
        .or_(ilike_any(["part_name", "car_model", "description"], term))
        .order("created_at", desc=True)
        .limit(SEARCH_LIMIT)
        .execute()
    )
    listings = (
        db.table("marketplace_listings")
        .select("*")
        .eq("market_id", settings.DEFAULT_MARKET_ID)
        .eq("status", ListingStatus.ACTIVE.value)
        .or_(ilike_any(["title", "description"], term))
        .order("created_at", desc=True)
        .limit(SEARCH_LIMIT)
        .execute()
    )
    shops = (
        db.table("shops")
        .select("*")
        .eq("market_id", settings.DEFAULT_MARKET_ID)
        .or_(ilike_any(["name", "description"], term))
        .order("created_at", desc=True)
        .limit(SEARCH_LIMIT)
        .execute()
    )

    return SearchResults(
        posts=parse_documents(FeedPostResponse, posts.data),
        listings=parse_documents(ListingResponse, listings.data),
        shops=parse_documents(ShopResponse, shops.data),
    )
