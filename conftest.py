"""
Shared pytest fixtures: in-memory Supabase client, fake billing provider, API client
"""

import copy
import json
from datetime import datetime

import httpx
import pytest
from fastapi.testclient import TestClient

from main_fastapi import app
from scale_api.config import Settings, get_settings
from scale_api.services.billing_client import BillingClient, get_billing_client
from scale_api.services.supabase_service import SupabaseService, get_supabase_service

JWT_SECRET = "test-jwt-secret-0123456789abcdef0123456789"
WEBHOOK_SECRET = "test-webhook-secret"
BILLING_BASE_URL = "https://billing.test"

UNIQUE_KEYS = {"users": "user_id", "usage_events": "event_id"}


def _comparable(value):
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return value
    return value


class FakeResult:
    def __init__(self, data):
        self.data = data
        self.count = len(data)


class FakeQuery:
    """Just enough of the postgrest query builder for the storage service"""

    def __init__(self, tables, name):
        self.tables = tables
        self.name = name
        self.op = "select"
        self.payload = None
        self.filters = []
        self._order = None
        self._limit = None

    def select(self, *columns, **kwargs):
        self.op = "select"
        return self

    def insert(self, data):
        self.op, self.payload = "insert", data
        return self

    def update(self, data):
        self.op, self.payload = "update", data
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: _comparable(row.get(column)) >= _comparable(value))
        return self

    def lte(self, column, value):
        self.filters.append(lambda row: _comparable(row.get(column)) <= _comparable(value))
        return self

    def lt(self, column, value):
        self.filters.append(lambda row: _comparable(row.get(column)) < _comparable(value))
        return self

    def order(self, column, desc=False):
        self._order = (column, desc)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _matches(self, row):
        return all(check(row) for check in self.filters)

    def execute(self):
        rows = self.tables.setdefault(self.name, [])
        if self.op == "insert":
            new_rows = self.payload if isinstance(self.payload, list) else [self.payload]
            key = UNIQUE_KEYS.get(self.name)
            for new in new_rows:
                if key and any(r.get(key) == new.get(key) for r in rows):
                    raise RuntimeError(f"duplicate key value violates unique constraint on {key}")
                # same round trip the real API does
                rows.append(json.loads(json.dumps(new)))
            return FakeResult(copy.deepcopy(new_rows))

        matched = [row for row in rows if self._matches(row)]
        if self.op == "update":
            for row in matched:
                row.update(json.loads(json.dumps(self.payload)))
            return FakeResult(copy.deepcopy(matched))
        if self.op == "delete":
            self.tables[self.name] = [row for row in rows if not self._matches(row)]
            return FakeResult(copy.deepcopy(matched))

        if self._order:
            column, desc = self._order
            matched = sorted(matched, key=lambda row: _comparable(row.get(column)), reverse=desc)
        if self._limit is not None:
            matched = matched[: self._limit]
        return FakeResult(copy.deepcopy(matched))


class FakeSupabaseClient:
    def __init__(self):
        self.tables = {"users": [], "usage_events": []}

    def table(self, name):
        return FakeQuery(self.tables, name)


class FakeBillingProvider:
    """Records calls and answers from a route table; ``fail`` forces 503s"""

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.fail = False

    def add(self, method, path, payload, status_code=200):
        self.routes[(method, path)] = (status_code, payload)

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, request.url.path, body, request.headers))
        if self.fail:
            return httpx.Response(503, json={"error": "unavailable"})
        status_code, payload = self.routes.get((request.method, request.url.path), (404, {"error": "not found"}))
        return httpx.Response(status_code, json=payload)


@pytest.fixture
def test_settings():
    return Settings(
        JWT_SECRET=JWT_SECRET,
        JWT_EXPIRES_IN="7d",
        BILLING_WEBHOOK_SECRET=WEBHOOK_SECRET,
        BILLING_API_KEY="key",
        BILLING_API_SECRET="secret",
        BILLING_API_BASE_URL=BILLING_BASE_URL,
        FRONTEND_URL="https://app.test",
        PAYLINKS={
            "basic": "https://pay.test/basic",
            "mid": "https://pay.test/mid",
            "top": "https://pay.test/top",
        },
    )


@pytest.fixture
def fake_supabase():
    return FakeSupabaseClient()


@pytest.fixture
def db(fake_supabase):
    return SupabaseService(client=fake_supabase)


@pytest.fixture
def billing_provider():
    return FakeBillingProvider()


@pytest.fixture
def billing_client(test_settings, billing_provider):
    return BillingClient(test_settings, transport=httpx.MockTransport(billing_provider.handler))


@pytest.fixture
def client(test_settings, db, billing_client):
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_supabase_service] = lambda: db
    app.dependency_overrides[get_billing_client] = lambda: billing_client
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
