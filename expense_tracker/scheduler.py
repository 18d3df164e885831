# expense_tracker/scheduler.py
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from motor.motor_asyncio import AsyncIOMotorDatabase
import datetime as dt
from datetime import timezone
import logging
import traceback

from expense_tracker.services.sessions import cleanup_expired_sessions
from expense_tracker.settings import settings

log = logging.getLogger(__name__)

STARTUP_DELAY = dt.timedelta(seconds=5)


class Scheduler:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.scheduler = AsyncIOScheduler(timezone="UTC")

    def start(self):
        # Idle admin sessions; keep only one instance if previous is still running
        self.scheduler.add_job(
            self.session_cleanup_job,
            IntervalTrigger(minutes=settings.session_cleanup_minutes),
            id="session-cleanup",
            max_instances=1,
            coalesce=True,
        )
        # and once shortly after boot
        self.scheduler.add_job(
            self.session_cleanup_job,
            trigger="date",
            run_date=dt.datetime.now(timezone.utc) + STARTUP_DELAY,
            id="session-cleanup-startup",
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        log.info("Scheduler started; session cleanup every %s min", settings.session_cleanup_minutes)

    def shutdown(self):
        if getattr(self.scheduler, "running", False):
            self.scheduler.shutdown(wait=False)

    async def session_cleanup_job(self):
        try:
            ended = await cleanup_expired_sessions(self.db)
            if ended:
                log.info("Session cleanup ended %s sessions", ended)
        except Exception:
            traceback.print_exc()
