"""APScheduler: checks every minute for users whose accountability report is due."""

import asyncio
import logging
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from study_tracker import supabase_client as db
from study_tracker.services.report_runner import run_for_user

logger = logging.getLogger(__name__)


def _run_contained(user: dict, now: datetime | None = None) -> bool:
    """Run one user's report, logging instead of raising. Returns False on error."""
    try:
        run_for_user(user, now=now)
    except Exception:
        logger.exception("Report run failed for user %s", user.get("id"))
        return False
    return True


def run_tick(now: datetime | None = None) -> dict:
    """Run reports for every user whose send time is ``now``'s HH:MM.

    Users with the email service paused are excluded by the query.
    """
    now = now or datetime.now()
    current_time = now.strftime("%H:%M")
    logger.debug("Checking report schedule for %s", current_time)

    users = db.get_users_scheduled_at(current_time)
    if users:
        logger.info("Found %d users scheduled for %s", len(users), current_time)

    errors = 0
    for user in users:
        if not _run_contained(user, now):
            errors += 1

    return {"time": current_time, "users": len(users), "errors": errors}


def trigger_report_for_user(user_id, now: datetime | None = None) -> bool:
    """Run a report for one user now, ignoring send time and the paused flag.

    Returns False if the user could not be found.
    """
    try:
        user = db.get_user(user_id)
    except Exception:
        logger.exception("Error fetching user %s for manual trigger", user_id)
        return False

    if not user:
        logger.error("Manual trigger for user %s: user not found", user_id)
        return False

    logger.info("Manually triggering report for user %s", user_id)
    _run_contained(user, now)
    return True


class ReportScheduler:
    """Owns the per-minute report job for the lifetime of the app."""

    JOB_ID = "accountability_reports"

    def __init__(self, scheduler: AsyncIOScheduler | None = None):
        self._scheduler = scheduler or AsyncIOScheduler()
        self._scheduler.add_job(
            self._tick, "cron", second=0, id=self.JOB_ID,
            max_instances=2, coalesce=True, replace_existing=True,
            misfire_grace_time=50,
        )

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        self._scheduler.start()

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    async def _tick(self) -> None:
        # A late run still reports for the minute it was scheduled in
        now = datetime.now().replace(second=0, microsecond=0)
        try:
            result = await asyncio.to_thread(run_tick, now)
        except Exception as e:
            logger.error("Report schedule check failed: %s", e)
            return
        if result["errors"]:
            logger.warning("Report tick %s: %d users, %d errors",
                           result["time"], result["users"], result["errors"])

    def run_tick(self, now: datetime | None = None) -> dict:
        return run_tick(now)

    def trigger_now(self, user_id) -> bool:
        return trigger_report_for_user(user_id)
