"""
Scheduler for the burner account sweep, using APScheduler.

The sweep runs on an interval inside the API's event loop. A failed run is
logged and the next run still happens on schedule.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.models import utcnow
from services.profile_service import ProfileService

logger = logging.getLogger(__name__)

CLEANUP_JOB_ID = "burner_account_cleanup"


class CleanupScheduler:
    def __init__(
        self,
        profiles: ProfileService,
        interval_hours: int = 6,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.profiles = profiles
        self.interval_hours = interval_hours
        self.scheduler = scheduler or AsyncIOScheduler()
        self.last_run_at: Optional[datetime] = None
        self.last_deleted: Optional[int] = None
        self.last_error: Optional[str] = None

    async def run_cleanup_job(self) -> Optional[int]:
        """Run one sweep; returns the number of deleted accounts, None on failure"""
        self.last_run_at = utcnow()
        try:
            deleted = await self.profiles.cleanup_ephemeral_accounts()
        except Exception as e:
            self.last_error = str(e)
            logger.error(f"Burner account cleanup failed: {e}", exc_info=True)
            return None

        self.last_deleted = deleted
        self.last_error = None
        return deleted

    def start(self):
        """Register the sweep and start the scheduler."""
        if self.scheduler.running:
            logger.debug("Cleanup scheduler already running")
            return
        self.scheduler.add_job(
            self.run_cleanup_job,
            trigger=IntervalTrigger(hours=self.interval_hours),
            id=CLEANUP_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info(f"Cleanup scheduler started (every {self.interval_hours}h)")

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Cleanup scheduler stopped")

    def status(self) -> Dict[str, Any]:
        job = self.scheduler.get_job(CLEANUP_JOB_ID) if self.scheduler.running else None
        next_run = getattr(job, "next_run_time", None) if job else None
        return {
            "running": self.scheduler.running,
            "interval_hours": self.interval_hours,
            "next_run_at": next_run.isoformat() if next_run else None,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_deleted": self.last_deleted,
            "last_error": self.last_error,
        }
