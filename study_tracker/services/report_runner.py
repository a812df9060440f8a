"""Report orchestrator: build a user's daily report once and deliver it at most once per recipient per day."""

import logging
import time
from datetime import datetime, time as dt_time

from study_tracker import supabase_client as db
from study_tracker.config import REPORT_SEND_INTERVAL_SECONDS
from study_tracker.services.mailer import send_email
from study_tracker.services.report_content import build_report, date_label, session_seconds

logger = logging.getLogger(__name__)


def day_window(now: datetime) -> tuple[int, int]:
    """Epoch-millisecond bounds of ``now``'s local calendar day, both inclusive."""
    start = datetime.combine(now.date(), dt_time.min)
    end = datetime.combine(now.date(), dt_time.max)
    return int(start.timestamp() * 1000), int(end.timestamp() * 1000)


def display_name(user: dict) -> str:
    """Username, or the local part of the user's email when none is set."""
    if user.get("username"):
        return user["username"]
    return (user.get("email") or "").split("@")[0]


def run_for_user(user: dict, now: datetime | None = None, send=None, sleep=None) -> None:
    """Run one orchestration for ``user``.

    Sessions and recipients are read fresh. Each recipient is claimed in the
    ledger before its email goes out; a lost claim means another run already
    handled that recipient today. A claim is kept even when the send fails, so
    the recipient is not retried until an admin resets it.

    Data-access errors propagate to the caller.
    """
    now = now or datetime.now()
    send = send or send_email
    sleep = sleep or time.sleep
    user_id = user["id"]
    today = now.date().isoformat()

    start_ms, end_ms = day_window(now)
    sessions = db.get_sessions_between(user_id, start_ms, end_ms)
    if not sessions:
        logger.info("No sessions for user %s today, skipping report", user_id)
        return

    total_seconds = sum(session_seconds(s) for s in sessions)

    recipients = db.get_recipients(user_id)
    if not recipients:
        logger.info("User %s has sessions but no accountability recipients, skipping", user_id)
        return

    name = display_name(user)
    target = user.get("daily_target_min") or 0
    report = build_report(name, date_label(now), total_seconds, target, sessions)

    logger.info("Prepared report for %s (user %s), %d recipients",
                name, user_id, len(recipients))

    sent_any = False
    for recipient in recipients:
        address = recipient.get("email")
        if not address:
            continue

        if not db.claim_recipient(recipient["id"], user_id, today):
            logger.info("User %s: report to %s already sent today", user_id, address)
            continue

        if sent_any:
            sleep(REPORT_SEND_INTERVAL_SECONDS)
        sent_any = True

        logger.info("Sending report to %s for user %s", address, user_id)
        if not send(address, report.subject, report.html):
            logger.error("Report to %s for user %s failed; not retrying today",
                         address, user_id)
