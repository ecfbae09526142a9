"""
Pytest configuration and shared fixtures.

Settings come from the environment variables set below, before any app
import. Supabase is replaced by an in-memory fake that understands the
subset of the PostgREST query builder the store uses.
"""

import os
import copy
import threading
import time
from datetime import datetime
from uuid import uuid4

import pytest

os.environ.update({
    "WHATSAPP_PHONE_NUMBER_ID": "1234567890",
    "WHATSAPP_ACCESS_TOKEN": "test-access-token",
    "WHATSAPP_BUSINESS_ACCOUNT_ID": "9876543210",
    "WEBHOOK_VERIFY_TOKEN": "verify-me",
    "SUPABASE_URL": "http://localhost:54321",
    "SUPABASE_SERVICE_ROLE_KEY": "service-role-key",
    "APP_ENV": "test",
})

# Clear settings cache before any app imports to ensure test env vars are used
from wa_dashboard.config import get_settings
get_settings.cache_clear()

from fastapi.testclient import TestClient

from wa_dashboard.main import app
from wa_dashboard.database.message_store import MessageStore, get_message_store


def _comparable(value):
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Records a PostgREST-style query and runs it against FakeSupabase tables."""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload = None
        self.on_conflict = None
        self.ignore_duplicates = False
        self.filters = []
        self.order_by = None
        self.limit_n = None

    def select(self, *columns):
        self.op = "select"
        return self

    def insert(self, row):
        self.op, self.payload = "insert", row
        return self

    def upsert(self, row, on_conflict="", ignore_duplicates=False):
        self.op, self.payload = "upsert", row
        self.on_conflict = on_conflict
        self.ignore_duplicates = ignore_duplicates
        return self

    def update(self, values):
        self.op, self.payload = "update", values
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def gte(self, column, value):
        self.filters.append(
            lambda row: row.get(column) is not None and _comparable(row[column]) >= _comparable(value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def _new_row(self):
        row = copy.deepcopy(self.payload)
        row.setdefault("id", str(uuid4()))
        row.setdefault("created_at", datetime.now().astimezone().isoformat())
        return row

    def execute(self):
        self.db.queries.append((self.table, self.op))
        self.db.in_flight.set()
        if self.db.delay:
            time.sleep(self.db.delay)
        if self.db.fail:
            raise RuntimeError("connection refused")

        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            row = self._new_row()
            rows.append(row)
            return FakeResult([copy.deepcopy(row)])

        if self.op == "upsert":
            key = self.payload[self.on_conflict]
            existing = [r for r in rows if r.get(self.on_conflict) == key]
            if existing:
                if self.ignore_duplicates:
                    return FakeResult([])
                existing[0].update(copy.deepcopy(self.payload))
                return FakeResult([copy.deepcopy(existing[0])])
            row = self._new_row()
            rows.append(row)
            return FakeResult([copy.deepcopy(row)])

        if self.op == "update":
            matched = [r for r in rows if self._matches(r)]
            for row in matched:
                row.update(self.payload)
            return FakeResult(copy.deepcopy(matched))

        result = [r for r in rows if self._matches(r)]
        if self.order_by:
            column, desc = self.order_by
            result.sort(key=lambda r: _comparable(r.get(column)), reverse=desc)
        if self.limit_n is not None:
            result = result[:self.limit_n]
        return FakeResult(copy.deepcopy(result))


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.queries = []
        self.fail = False
        self.delay = 0
        self.in_flight = threading.Event()

    def table(self, name):
        return FakeQuery(self, name)

    def rows(self, name):
        return self.tables.get(name, [])


class FakeHTTPResponse:
    def __init__(self, status_code=200, json_data=None, text=None):
        self.status_code = status_code
        self._json = json_data
        self.text = text if text is not None else str(json_data)

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json


class GraphAPIStub:
    """Stands in for requests.post; records calls and replays a canned response."""

    def __init__(self):
        self.calls = []
        self.response = FakeHTTPResponse(200, {
            "messaging_product": "whatsapp",
            "contacts": [{"input": "254768322488", "wa_id": "254768322488"}],
            "messages": [{"id": "wamid.HBgMMjU0NzY4MzIyNDg4"}]
        })
        self.error = None

    def __call__(self, url, headers=None, json=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


@pytest.fixture(autouse=True)
def reset_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture
def store(db):
    return MessageStore(db)


@pytest.fixture
def client(store):
    """Test client with the message store bound to the in-memory database."""
    app.dependency_overrides[get_message_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def graph_api(monkeypatch):
    stub = GraphAPIStub()
    monkeypatch.setattr("wa_dashboard.services.whatsapp_client.requests.post", stub)
    return stub


@pytest.fixture
def add_message(db):
    """Insert a message row directly into the fake messages table."""
    counter = {"n": 0}

    def _add(direction, timestamp, phone="254768322488", body="Hello",
             is_ai_response=None, status=None, message_type="text", message_id=None):
        counter["n"] += 1
        inbound = direction == "inbound"
        row = {
            "id": str(uuid4()),
            "message_id": message_id or f"wamid.test{counter['n']}",
            "phone_number": phone,
            "from_number": phone if inbound else "1234567890",
            "to_number": "1234567890" if inbound else phone,
            "body": body,
            "direction": direction,
            "status": status or ("received" if inbound else "sent"),
            "timestamp": timestamp.isoformat(),
            "message_type": message_type,
            "is_read": False,
            "is_ai_response": False if inbound else is_ai_response,
            "metadata": {},
        }
        db.tables.setdefault("messages", []).append(row)
        return row

    return _add
