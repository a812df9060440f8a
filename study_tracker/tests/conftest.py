"""Shared fixtures for study tracker tests.

Provides:
- fake_db: patches supabase_client with an in-memory fake
- client: FastAPI TestClient with the scheduler lifespan disabled
- sample data factories for users, study sessions and recipients
"""

import itertools
import os
import threading
from collections import defaultdict
from datetime import datetime, timedelta
from unittest.mock import patch, MagicMock

import pytest

# Set env vars before any study_tracker imports
os.environ.setdefault("SUPABASE_URL", "https://fake.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "fake-key")
os.environ.setdefault("ADMIN_SECRET", "test-admin-secret")
os.environ.setdefault("RESEND_API_KEY", "")

# A fixed evening used as "now" throughout the tests
NOW = datetime(2026, 10, 19, 20, 0)
TODAY = NOW.date().isoformat()
YESTERDAY = (NOW - timedelta(days=1)).date().isoformat()


# ---------------------------------------------------------------------------
# In-memory fake Supabase
# ---------------------------------------------------------------------------

def _literal(val):
    """Convert a PostgREST filter literal to a Python value."""
    return {"null": None, "true": True, "false": False}.get(val, val)


def _compare(op, row_val, val):
    if op == "is":
        return row_val is val
    if row_val is None:
        # SQL comparisons with NULL are never true
        return False
    if isinstance(row_val, (int, float)) and not isinstance(row_val, bool) and isinstance(val, str):
        try:
            val = type(row_val)(val)
        except ValueError:
            pass
    if op == "eq":
        return row_val == val
    if op == "neq":
        return row_val != val
    if op == "gte":
        return row_val >= val
    if op == "lte":
        return row_val <= val
    if op == "lt":
        return row_val < val
    raise ValueError(f"Unsupported filter op: {op}")


class FakeQueryResult:
    def __init__(self, data=None, count=None):
        self.data = data or []
        self.count = count


class FakeQueryBuilder:
    """Mimics the supabase-py query builder chain.

    Each execute() runs under the store lock, like a single SQL statement.
    """

    def __init__(self, db, table_name):
        self._db = db
        self._table = table_name
        self._filters = []
        self._or_groups = []
        self._order_col = None
        self._order_desc = False
        self._limit_val = None
        self._columns = "*"
        self._update_data = None
        self._delete_mode = False
        self._insert_data = None

    def select(self, columns="*", count=None):
        self._columns = columns
        return self

    def insert(self, data):
        self._insert_data = data
        return self

    def update(self, data):
        self._update_data = data
        return self

    def delete(self):
        self._delete_mode = True
        return self

    def eq(self, col, val):
        self._filters.append(("eq", col, val))
        return self

    def neq(self, col, val):
        self._filters.append(("neq", col, val))
        return self

    def gte(self, col, val):
        self._filters.append(("gte", col, val))
        return self

    def lte(self, col, val):
        self._filters.append(("lte", col, val))
        return self

    def lt(self, col, val):
        self._filters.append(("lt", col, val))
        return self

    def is_(self, col, val):
        self._filters.append(("is", col, _literal(val)))
        return self

    def or_(self, expr):
        group = []
        for part in expr.split(","):
            col, op, val = part.split(".", 2)
            group.append((op, col, _literal(val)))
        self._or_groups.append(group)
        return self

    def order(self, col, desc=False):
        self._order_col = col
        self._order_desc = desc
        return self

    def limit(self, n):
        self._limit_val = n
        return self

    def _match(self, row):
        for op, col, val in self._filters:
            if not _compare(op, row.get(col), val):
                return False
        for group in self._or_groups:
            if not any(_compare(op, row.get(col), val) for op, col, val in group):
                return False
        return True

    def execute(self):
        with self._db.lock:
            return self._execute()

    def _execute(self):
        self._db.statements.append((self._table, self._kind()))
        table = self._db.store[self._table]

        if self._insert_data is not None:
            row = dict(self._insert_data)
            if "id" not in row:
                row["id"] = self._db.next_id(self._table)
            table.append(row)
            return FakeQueryResult(data=[dict(row)])

        if self._update_data is not None:
            updated = []
            for row in table:
                if self._match(row):
                    row.update(self._update_data)
                    updated.append(dict(row))
            return FakeQueryResult(data=updated)

        if self._delete_mode:
            remaining = [r for r in table if not self._match(r)]
            removed = [r for r in table if self._match(r)]
            table[:] = remaining
            return FakeQueryResult(data=removed)

        # SELECT
        rows = [dict(r) for r in table if self._match(r)]
        if self._order_col:
            rows.sort(key=lambda r: r.get(self._order_col), reverse=self._order_desc)
        if self._limit_val is not None:
            rows = rows[:self._limit_val]
        return FakeQueryResult(data=rows)

    def _kind(self):
        if self._insert_data is not None:
            return "insert"
        if self._update_data is not None:
            return "update"
        if self._delete_mode:
            return "delete"
        return "select"


class FakeDB:
    """In-memory store keyed by table name."""

    def __init__(self):
        self.store = defaultdict(list)
        self.lock = threading.Lock()
        self.statements = []
        self._ids = defaultdict(lambda: itertools.count(1000))

    def next_id(self, table):
        return next(self._ids[table])

    def table(self, name):
        return FakeQueryBuilder(self, name)

    def updates_to(self, table):
        return sum(1 for t, kind in self.statements if t == table and kind == "update")

    def clear(self):
        self.store.clear()
        self.statements.clear()


@pytest.fixture
def fake_db():
    """Provides a clean in-memory DB and patches supabase_client._table."""
    db = FakeDB()

    with patch("study_tracker.supabase_client._table", side_effect=db.table):
        with patch("study_tracker.supabase_client.get_client", return_value=MagicMock()):
            yield db


@pytest.fixture
def client(fake_db):
    """Sync test client for the FastAPI app with mocked DB and no scheduler."""
    from contextlib import asynccontextmanager

    from fastapi.testclient import TestClient
    from study_tracker.app import create_app

    @asynccontextmanager
    async def noop_lifespan(app):
        yield

    app = create_app()
    app.router.lifespan_context = noop_lifespan

    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers():
    with patch("study_tracker.routers.admin.ADMIN_SECRET", "test-admin-secret"):
        yield {"Authorization": "Bearer test-admin-secret"}


# ---------------------------------------------------------------------------
# Data factories
# ---------------------------------------------------------------------------

def epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def make_user(**overrides):
    defaults = {
        "id": 1,
        "email": "student@example.com",
        "username": "Sam",
        "daily_target_min": 120,
        "daily_email_time": "20:00",
        "email_service_paused": False,
    }
    defaults.update(overrides)
    return defaults


def make_session(user_id=1, start=None, minutes=45, topic="Calculus", **overrides):
    start = start or NOW.replace(hour=9, minute=0)
    end = start + timedelta(minutes=minutes)
    defaults = {
        "user_id": user_id,
        "start": epoch_ms(start),
        "end": epoch_ms(end),
        "duration_seconds": minutes * 60,
        "topic_text": topic,
        "is_private": False,
    }
    defaults.update(overrides)
    return defaults


def make_recipient(**overrides):
    defaults = {
        "user_id": 1,
        "email": "partner@example.com",
        "last_sent_date": None,
    }
    defaults.update(overrides)
    return defaults


def seed(fake_db, users=(), sessions=(), recipients=()):
    """Insert rows, assigning ids to sessions and recipients that lack one."""
    fake_db.store["users"].extend(dict(u) for u in users)
    for s in sessions:
        fake_db.store["study_sessions"].append({"id": fake_db.next_id("study_sessions"), **s})
    rows = []
    for r in recipients:
        row = {"id": fake_db.next_id("accountability_emails"), **r}
        fake_db.store["accountability_emails"].append(row)
        rows.append(row)
    return rows
