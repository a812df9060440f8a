"""Supabase connection and query helpers for users, study sessions and the recipient ledger."""

import threading
from datetime import date

from supabase import Client, create_client

from study_tracker.config import SUPABASE_SERVICE_KEY, SUPABASE_URL

_client: Client | None = None
_client_lock = threading.Lock()

USERS = "users"
SESSIONS = "study_sessions"
RECIPIENTS = "accountability_emails"


class DuplicateRecipientError(Exception):
    """Raised when a user already has the given accountability address."""


def get_client() -> Client:
    """Return the Supabase client singleton (thread-safe)."""
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                if not SUPABASE_URL or not SUPABASE_SERVICE_KEY:
                    raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")
                _client = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
    return _client


# ---------------------------------------------------------------------------
# Generic helpers
# ---------------------------------------------------------------------------

def _table(name: str):
    """Return a table query builder."""
    return get_client().table(name)


def insert(table: str, data: dict) -> dict:
    """Insert a row and return it."""
    result = _table(table).insert(data).execute()
    return result.data[0] if result.data else {}


def update(table: str, data: dict, match: dict) -> list[dict]:
    """Update rows matching conditions and return the changed rows."""
    q = _table(table).update(data)
    for k, v in match.items():
        q = q.eq(k, v)
    result = q.execute()
    return result.data or []


def delete(table: str, match: dict) -> list:
    """Delete rows matching conditions."""
    q = _table(table).delete()
    for k, v in match.items():
        q = q.eq(k, v)
    result = q.execute()
    return result.data


def select(table: str, columns: str = "*", match: dict | None = None,
           order: str | None = None, order_desc: bool = False,
           limit: int | None = None) -> list[dict]:
    """Select rows with optional filtering and ordering."""
    q = _table(table).select(columns)
    if match:
        for k, v in match.items():
            q = q.eq(k, v)
    if order:
        q = q.order(order, desc=order_desc)
    if limit:
        q = q.limit(limit)
    result = q.execute()
    return result.data or []


def select_one(table: str, columns: str = "*", match: dict | None = None) -> dict | None:
    """Select a single row."""
    rows = select(table, columns, match, limit=1)
    return rows[0] if rows else None


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def get_user(user_id) -> dict | None:
    """Get a single user by id."""
    return select_one(USERS, match={"id": user_id})


def get_users() -> list[dict]:
    """Get every user, oldest first."""
    return select(
        USERS,
        columns="id, email, username, daily_target_min, daily_email_time, email_service_paused",
        order="id",
    )


def get_users_scheduled_at(send_time: str) -> list[dict]:
    """Get users whose report time is ``send_time`` (HH:MM) and who have not paused emails."""
    q = _table(USERS).select("*").eq("daily_email_time", send_time)
    q = q.or_("email_service_paused.is.null,email_service_paused.eq.false")
    result = q.order("id").execute()
    return result.data or []


# ---------------------------------------------------------------------------
# Study sessions
# ---------------------------------------------------------------------------

def get_sessions_between(user_id, start_ms: int, end_ms: int) -> list[dict]:
    """Get a user's sessions that started inside [start_ms, end_ms], earliest first."""
    q = _table(SESSIONS).select("*").eq("user_id", user_id)
    q = q.gte("start", start_ms).lte("start", end_ms)
    result = q.order("start").execute()
    return result.data or []


# ---------------------------------------------------------------------------
# Recipient ledger
# ---------------------------------------------------------------------------

def get_recipients(user_id) -> list[dict]:
    """Get a user's accountability recipients in stable id order."""
    return select(RECIPIENTS, columns="id, user_id, email, last_sent_date",
                  match={"user_id": user_id}, order="id")


def claim_recipient(recipient_id, user_id, today: date | str) -> bool:
    """Mark a recipient as sent for ``today`` unless it already is.

    Issued as a single conditional UPDATE, so of any number of concurrent
    callers for the same recipient and day exactly one gets True. Also
    returns False when the row is gone or belongs to another user.
    """
    today = today.isoformat() if isinstance(today, date) else today
    q = _table(RECIPIENTS).update({"last_sent_date": today})
    q = q.eq("id", recipient_id).eq("user_id", user_id)
    q = q.or_(f"last_sent_date.is.null,last_sent_date.neq.{today}")
    result = q.execute()
    return bool(result.data)


def reset_recipient(recipient_id) -> bool:
    """Clear a recipient's last sent date. Returns False if the recipient does not exist."""
    return bool(update(RECIPIENTS, {"last_sent_date": None}, {"id": recipient_id}))


def add_recipient(user_id, email: str) -> dict:
    """Add an accountability address for a user."""
    email = email.strip().lower()
    if select_one(RECIPIENTS, columns="id", match={"user_id": user_id, "email": email}):
        raise DuplicateRecipientError(f"{email} is already a recipient")
    return insert(RECIPIENTS, {"user_id": user_id, "email": email, "last_sent_date": None})


def remove_recipient(user_id, email: str) -> int:
    """Remove an accountability address from a user. Returns rows removed."""
    removed = delete(RECIPIENTS, {"user_id": user_id, "email": email.strip().lower()})
    return len(removed or [])
