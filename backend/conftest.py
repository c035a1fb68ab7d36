# conftest.py - Shared fixtures: in-memory PostgREST stand-in, fake identity, stub LLM

import os
import sys
from collections import defaultdict
from datetime import datetime, timezone

# Reports bucket by local time; pin the zone before config is imported
os.environ["APP_TIMEZONE"] = "UTC"
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

import pytest
from fastapi.encoders import jsonable_encoder
from fastapi.testclient import TestClient

from auth import IdentityVerifier, get_identity_verifier
from database import ACHIEVEMENT_CATALOG
from errors import AuthenticationError, ConflictError, SchemaMissingError
from main import app
from providers import BaseProvider, get_llm_provider
from services.interval_service import parse_timestamp
from supabase_rest import get_db

USER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_USER_ID = "22222222-2222-2222-2222-222222222222"
TOKENS = {"token-user": USER_ID, "token-other": OTHER_USER_ID}


class FakeDb:
    """
    Same async surface as SupabaseRest, backed by dicts.
    Rows are stored JSON-encoded (timestamps as ISO strings) like PostgREST returns them.
    """

    UNIQUE = {
        "categories": ("user_id", "name"),
        "budgets": ("user_id", "category_id", "month", "year"),
        "achievements": ("slug",),
        "user_achievements": ("user_id", "achievement_id"),
    }
    DEFAULTS = {
        "expenses": {"carbon_kg": 0, "transport_type": None, "category_id": None, "merchant": None},
        "budgets": {"spent_amount": 0},
        "savings_goals": {"saved_amount": 0, "deadline": None},
        "recommendations": {"seen": False},
        "subscriptions": {"active": True},
    }
    # Tables without a surrogate key
    NO_ID = {"user_achievements"}

    def __init__(self, missing=()):
        self.tables = defaultdict(list)
        self.missing = set(missing)
        self._ids = defaultdict(int)

    # -- helpers -------------------------------------------------------
    def _table(self, name: str) -> list:
        if name in self.missing:
            raise SchemaMissingError(name)
        return self.tables[name]

    def _new_row(self, table: str, data: dict) -> dict:
        row = {**self.DEFAULTS.get(table, {}), **jsonable_encoder(data)}
        if table not in self.NO_ID and "id" not in row:
            self._ids[table] += 1
            row["id"] = self._ids[table]
        row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        return row

    def _violates(self, table: str, row: dict, rows: list, ignore=None) -> bool:
        keys = self.UNIQUE.get(table)
        if not keys:
            return False
        return any(
            other is not ignore and all(other.get(k) == row.get(k) for k in keys)
            for other in rows
        )

    @staticmethod
    def _compare(stored, value):
        if isinstance(value, datetime):
            ts = parse_timestamp(stored)
            if ts is not None and ts.tzinfo is None:
                ts = ts.replace(tzinfo=timezone.utc)
            return ts, value
        return stored, jsonable_encoder(value)

    def _matches(self, row, filters=None, where=None, search=None) -> bool:
        for key, value in (filters or {}).items():
            if row.get(key) != jsonable_encoder(value):
                return False
        for column, op, value in where or []:
            stored = row.get(column)
            if op == "is":
                if stored is not value:
                    return False
                continue
            if op == "not.is":
                if stored is value:
                    return False
                continue
            left, right = self._compare(stored, value)
            if left is None:
                return False
            ok = {
                "gte": lambda: left >= right,
                "lte": lambda: left <= right,
                "gt": lambda: left > right,
                "lt": lambda: left < right,
                "neq": lambda: left != right,
            }[op]()
            if not ok:
                return False
        if search:
            columns, term = search
            if not any(term.lower() in str(row.get(c) or "").lower() for c in columns):
                return False
        return True

    def _view(self, row: dict, columns: str) -> dict:
        out = dict(row)
        if "category:categories" in columns:
            cat = next((c for c in self.tables["categories"] if c["id"] == row.get("category_id")), None)
            out["category"] = (
                {k: cat.get(k) for k in ("id", "name", "color", "icon")} if cat else None
            )
        return out

    def seed(self, table: str, *rows: dict) -> list:
        created = [self._new_row(table, r) for r in rows]
        self.tables[table].extend(created)
        return created

    # -- SupabaseRest surface -----------------------------------------
    async def select(self, table, columns="*", filters=None, where=None, search=None,
                     order=None, limit=None, offset=None):
        rows, _ = await self.select_with_count(table, columns, filters, where, search, order, limit, offset)
        return rows

    async def select_with_count(self, table, columns="*", filters=None, where=None, search=None,
                                order=None, limit=None, offset=None):
        rows = [r for r in self._table(table) if self._matches(r, filters, where, search)]
        for column, ascending in reversed(order or []):
            present = [r for r in rows if r.get(column) is not None]
            absent = [r for r in rows if r.get(column) is None]
            present.sort(key=lambda r: r[column], reverse=not ascending)
            rows = present + absent
        total = len(rows)
        start = offset or 0
        end = start + limit if limit is not None else None
        return [self._view(r, columns) for r in rows[start:end]], total

    async def select_one(self, table, columns="*", filters=None):
        rows = await self.select(table, columns=columns, filters=filters, limit=1)
        return rows[0] if rows else None

    async def insert(self, table, data, columns="*"):
        rows = self._table(table)
        batch = [self._new_row(table, d) for d in (data if isinstance(data, list) else [data])]
        for i, row in enumerate(batch):
            if self._violates(table, row, rows + batch[:i]):
                raise ConflictError()
        rows.extend(batch)
        return [self._view(r, columns) for r in batch]

    async def insert_one(self, table, data, columns="*"):
        rows = await self.insert(table, data, columns)
        return rows[0] if rows else {}

    async def upsert(self, table, data, on_conflict, columns="*"):
        keys = on_conflict.split(",")
        encoded = jsonable_encoder(data)
        for row in self._table(table):
            if all(row.get(k) == encoded.get(k) for k in keys):
                row.update(encoded)
                return self._view(row, columns)
        return await self.insert_one(table, data, columns)

    async def update(self, table, filters, data, columns="*"):
        rows = self._table(table)
        matched = [r for r in rows if self._matches(r, filters)]
        encoded = jsonable_encoder(data)
        for row in matched:
            if self._violates(table, {**row, **encoded}, rows, ignore=row):
                raise ConflictError()
        for row in matched:
            row.update(encoded)
        return [self._view(r, columns) for r in matched]

    async def delete(self, table, filters):
        rows = self._table(table)
        removed = [r for r in rows if self._matches(r, filters)]
        self.tables[table] = [r for r in rows if all(r is not x for x in removed)]
        return removed


class FakeVerifier(IdentityVerifier):
    async def verify(self, token: str) -> str:
        if token not in TOKENS:
            raise AuthenticationError("Invalid token")
        return TOKENS[token]


class StubProvider(BaseProvider):
    """Returns a canned reply and records what it was asked."""

    def __init__(self, text: str | None = "[]", status: str = "success"):
        self.text = text
        self.status = status
        self.calls = []

    @property
    def name(self) -> str:
        return "stub"

    async def chat(self, messages: list[dict], model: str | None = None) -> dict:
        self.calls.append(messages)
        failed = self.status != "success"
        return {
            "text": None if failed else self.text,
            "provider": self.name,
            "model": model or "stub-model",
            "status": self.status,
            "error": "stub failure" if failed else None,
        }


def seed_catalog(db: FakeDb) -> list:
    return db.seed("achievements", *ACHIEVEMENT_CATALOG)


@pytest.fixture
def db():
    return FakeDb()


@pytest.fixture
def provider():
    return StubProvider()


@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer token-user"}


@pytest.fixture
def other_headers():
    return {"Authorization": "Bearer token-other"}


@pytest.fixture
def client(db, provider):
    app.dependency_overrides[get_identity_verifier] = FakeVerifier
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_llm_provider] = lambda: provider
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.clear()
