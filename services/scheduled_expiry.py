"""
Scheduled expiry service - retires stale posts and listings
"""
import logging
from datetime import datetime, timedelta, UTC
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from config import settings

logger = logging.getLogger(__name__)


def expire_stale_records(db, now: Optional[datetime] = None,
                         post_days: Optional[int] = None,
                         listing_days: Optional[int] = None) -> dict:
    """
    Mark active feed posts and listings with no activity inside their window as expired.

    Returns the number of records expired per table.
    """
    now = now or datetime.now(UTC)
    post_days = post_days if post_days is not None else settings.POST_EXPIRY_DAYS
    listing_days = listing_days if listing_days is not None else settings.LISTING_EXPIRY_DAYS

    result = {}
    for table, days in (("feed_posts", post_days), ("marketplace_listings", listing_days)):
        cutoff = (now - timedelta(days=days)).isoformat()
        response = (
            db.table(table)
            .update({"status": "expired"})
            .eq("status", "active")
            .lt("last_activity_at", cutoff)
            .execute()
        )
        result[table] = len(response.data or [])
    return result


class ScheduledExpiryService:
    """Runs the expiry sweep once a day"""

    def __init__(self):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.db = None

    def initialize(self, db):
        """Initialize the scheduler with the daily sweep

        Args:
            db: DatabaseAdapter used by the sweep
        """
        if self.scheduler is not None:
            logger.warning("Scheduler already initialized")
            return

        self.scheduler = AsyncIOScheduler()
        self.db = db

        self.scheduler.add_job(
            self._run_expiry,
            CronTrigger(hour=1, minute=0, timezone="UTC"),
            id="expiry_daily",
            name="Daily post/listing expiry at 1 AM UTC",
            replace_existing=True,
            misfire_grace_time=600,  # Allow 10 minutes grace period
        )

        logger.info("Scheduled expiry service initialized: daily at 1:00 AM UTC")

    async def _run_expiry(self):
        try:
            logger.info(f"Starting scheduled expiry at {datetime.now(UTC).isoformat()}...")
            result = expire_stale_records(self.db)
            logger.info(
                f"Scheduled expiry completed: "
                f"posts={result['feed_posts']}, listings={result['marketplace_listings']}"
            )
        except Exception as e:
            logger.error(f"Scheduled expiry failed: {e}", exc_info=True)

    def start(self):
        """Start the scheduler"""
        if self.scheduler is None:
            logger.error("Scheduler not initialized")
            return

        if self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        self.scheduler.start()
        logger.info("Scheduled expiry service started")

    def stop(self):
        """Stop the scheduler"""
        if self.scheduler is None:
            return

        if not self.scheduler.running:
            logger.warning("Scheduler not running")
            return

        self.scheduler.shutdown()
        logger.info("Scheduled expiry service stopped")

    async def get_jobs(self) -> list:
        """Get list of scheduled jobs"""
        if self.scheduler is None:
            return []

        return [
            {
                'id': job.id,
                'name': job.name,
                'next_run': job.next_run_time.isoformat() if job.next_run_time else None,
            }
            for job in self.scheduler.get_jobs()
        ]


# Global instance
_scheduled_expiry_service: Optional[ScheduledExpiryService] = None


def get_scheduled_expiry_service() -> ScheduledExpiryService:
    """Get or create the global scheduled expiry service"""
    global _scheduled_expiry_service
    if _scheduled_expiry_service is None:
        _scheduled_expiry_service = ScheduledExpiryService()
    return _scheduled_expiry_service
