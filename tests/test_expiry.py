"""Scheduled expiry tests"""
import pytest
from datetime import datetime, timedelta, UTC

from services.scheduled_expiry import ScheduledExpiryService, expire_stale_records


def _post(db, author_id, days_idle, status="active"):
    last = (datetime.now(UTC) - timedelta(days=days_idle)).isoformat()
    return db.table("feed_posts").insert({
        "author_id": author_id, "part_name": "Shock absorber", "car_model": "Ipsum",
        "location_zone": "KM5", "market_id": "kisekka", "status": status, "last_activity_at": last,
    }).execute().data[0]


def _listing(db, seller_id, days_idle):
    last = (datetime.now(UTC) - timedelta(days=days_idle)).isoformat()
    return db.table("marketplace_listings").insert({
        "seller_id": seller_id, "title": "Side mirror", "price": 80000, "condition": "used",
        "category": "Exterior", "location_zone": "KM5", "market_id": "kisekka",
        "status": "active", "last_activity_at": last,
    }).execute().data[0]


def _status(db, table, row_id):
    return db.table(table).select("status").eq("id", row_id).execute().data[0]["status"]


def test_stale_records_are_expired(clean_database, test_buyer):
    stale_post = _post(clean_database, test_buyer["id"], days_idle=31)
    fresh_post = _post(clean_database, test_buyer["id"], days_idle=2)
    resolved_post = _post(clean_database, test_buyer["id"], days_idle=90, status="resolved")
    stale_listing = _listing(clean_database, test_buyer["id"], days_idle=61)
    fresh_listing = _listing(clean_database, test_buyer["id"], days_idle=45)

    result = expire_stale_records(clean_database, post_days=30, listing_days=60)

    assert result == {"feed_posts": 1, "marketplace_listings": 1}
    assert _status(clean_database, "feed_posts", stale_post["id"]) == "expired"
    assert _status(clean_database, "feed_posts", fresh_post["id"]) == "active"
    assert _status(clean_database, "feed_posts", resolved_post["id"]) == "resolved"
    assert _status(clean_database, "marketplace_listings", stale_listing["id"]) == "expired"
    assert _status(clean_database, "marketplace_listings", fresh_listing["id"]) == "active"


def test_expired_posts_leave_the_feed(client, clean_database, test_buyer):
    _post(clean_database, test_buyer["id"], days_idle=40)
    expire_stale_records(clean_database)
    assert client.get("/api/posts").json()["items"] == []


@pytest.mark.asyncio
async def test_scheduler_registers_daily_job(clean_database):
    service = ScheduledExpiryService()
    assert await service.get_jobs() == []

    service.initialize(clean_database)
    jobs = service.scheduler.get_jobs()
    assert [job.id for job in jobs] == ["expiry_daily"]
