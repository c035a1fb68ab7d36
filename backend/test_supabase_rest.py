# test_supabase_rest.py - PostgREST client: query building and error translation

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from errors import ConfigurationError, ConflictError, NotFoundError, SchemaMissingError
from supabase_rest import DatabaseError, SupabaseRest, raise_for_code

BASE_URL = "https://project.supabase.co"


def make_client(handler) -> tuple[SupabaseRest, list]:
    seen = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    rest = SupabaseRest("user-token", base_url=BASE_URL, api_key="anon-key", transport=httpx.MockTransport(record))
    return rest, seen


def ok(payload, **headers):
    return lambda request: httpx.Response(200, json=payload, headers=headers)


def test_requires_configuration():
    with pytest.raises(ConfigurationError):
        SupabaseRest("token", base_url="", api_key="")


def test_select_builds_filters_and_forwards_token():
    rest, seen = make_client(ok([{"id": 1}]))
    rows = asyncio.run(rest.select(
        "expenses",
        columns="*, category:categories(id, name)",
        filters={"user_id": "u1", "active": True},
        where=[("created_at", "gte", datetime(2024, 5, 1, tzinfo=timezone.utc)), ("transport_type", "not.is", None)],
        order=[("created_at", False), ("id", True)],
        limit=5,
        offset=10,
    ))

    assert rows == [{"id": 1}]
    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/expenses"
    params = request.url.params
    assert params["select"] == "*,category:categories(id,name)"
    assert params["user_id"] == "eq.u1"
    assert params["active"] == "eq.true"
    assert params["created_at"] == "gte.2024-05-01T00:00:00+00:00"
    assert params["transport_type"] == "not.is.null"
    assert params["order"] == "created_at.desc,id.asc"
    assert params["limit"] == "5"
    assert params["offset"] == "10"
    assert request.headers["Authorization"] == "Bearer user-token"
    assert request.headers["apikey"] == "anon-key"


def test_search_becomes_or_filter():
    rest, seen = make_client(ok([]))
    asyncio.run(rest.select("expenses", search=(("merchant", "description"), "cafe")))
    assert seen[0].url.params["or"] == "(merchant.ilike.*cafe*,description.ilike.*cafe*)"


def test_select_with_count_reads_content_range():
    rest, seen = make_client(ok([{"id": 1}, {"id": 2}], **{"content-range": "0-1/7"}))
    rows, total = asyncio.run(rest.select_with_count("expenses", limit=2))
    assert len(rows) == 2
    assert total == 7
    assert "count=exact" in seen[0].headers["Prefer"]


def test_select_one_returns_none_when_empty():
    rest, _ = make_client(ok([]))
    assert asyncio.run(rest.select_one("savings_goals", filters={"id": 3})) is None


def test_upsert_merges_on_conflict_columns():
    rest, seen = make_client(ok([{"id": 9, "limit_amount": 150}]))
    row = asyncio.run(rest.upsert("budgets", {"user_id": "u1", "month": 5}, on_conflict="user_id,category_id,month,year"))
    assert row == {"id": 9, "limit_amount": 150}
    request = seen[0]
    assert request.method == "POST"
    assert request.url.params["on_conflict"] == "user_id,category_id,month,year"
    assert "resolution=merge-duplicates" in request.headers["Prefer"]


def test_insert_encodes_datetimes():
    rest, seen = make_client(ok([{"id": 1}]))
    asyncio.run(rest.insert_one("expenses", {"amount": 3, "created_at": datetime(2024, 5, 1, 9, tzinfo=timezone.utc)}))
    assert json.loads(seen[0].content) == {"amount": 3, "created_at": "2024-05-01T09:00:00+00:00"}


def test_update_and_delete_scope_by_filters():
    rest, seen = make_client(ok([]))
    assert asyncio.run(rest.update("expenses", {"id": 4, "user_id": "u1"}, {"amount": 2})) == []
    assert asyncio.run(rest.delete("expenses", {"id": 4, "user_id": "u1"})) == []
    assert [r.method for r in seen] == ["PATCH", "DELETE"]
    assert seen[1].url.params["id"] == "eq.4"
    assert seen[1].url.params["user_id"] == "eq.u1"


@pytest.mark.parametrize("status,code,error", [
    (404, "42P01", SchemaMissingError),
    (404, "PGRST205", SchemaMissingError),
    (409, "23505", ConflictError),
    (406, "PGRST116", NotFoundError),
    (400, "22P02", DatabaseError),
])
def test_error_codes_are_translated(status, code, error):
    rest, _ = make_client(lambda request: httpx.Response(status, json={"code": code, "message": "boom"}))
    with pytest.raises(error):
        asyncio.run(rest.select("incomes"))


def test_missing_table_message_names_the_table():
    with pytest.raises(SchemaMissingError) as exc:
        raise_for_code("42P01", "incomes")
    assert exc.value.message == "Table incomes does not exist. Run the SQL migration to create it."
    assert exc.value.status_code == 503


def test_non_json_error_body():
    rest, _ = make_client(lambda request: httpx.Response(502, text="Bad gateway"))
    with pytest.raises(DatabaseError):
        asyncio.run(rest.select("expenses"))


def test_unreachable_database():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    rest, _ = make_client(refuse)
    with pytest.raises(DatabaseError) as exc:
        asyncio.run(rest.select("expenses"))
    assert exc.value.message == "Database unavailable"
