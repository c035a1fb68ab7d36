"""
supabase_rest.py - HTTP-based database client using Supabase's PostgREST API.
Every request is sent with the caller's own access token, so row-level
security in Postgres sees auth.uid() and enforces ownership a second time.
PostgREST error codes are translated into the application error taxonomy.
"""

import logging
from urllib.parse import quote

import httpx
from fastapi import Depends
from fastapi.encoders import jsonable_encoder

from auth import UserScope, get_user_scope
from config import SUPABASE_URL, SUPABASE_ANON_KEY, HTTP_TIMEOUT
from errors import AppError, ConfigurationError, ConflictError, NotFoundError, SchemaMissingError

logger = logging.getLogger(__name__)

# undefined_table from Postgres, and PostgREST's "table not in schema cache"
MISSING_TABLE_CODES = {"42P01", "PGRST205"}
UNIQUE_VIOLATION = "23505"
NO_ROWS = "PGRST116"


class DatabaseError(AppError):
    status_code = 500
    message = "Database error"


def raise_for_code(code: str | None, table: str, detail: str = ""):
    """Raise the application error matching a Postgres/PostgREST error code."""
    if code in MISSING_TABLE_CODES:
        raise SchemaMissingError(table)
    if code == UNIQUE_VIOLATION:
        raise ConflictError()
    if code == NO_ROWS:
        raise NotFoundError()
    logger.error("PostgREST error on %s (code=%s): %s", table, code, detail)
    raise DatabaseError()


def _encode(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return quote(str(jsonable_encoder(value)), safe="")


class SupabaseRest:
    """
    Thin async PostgREST client bound to one user's access token.

    Filters come in two shapes: ``filters`` is a dict of equality filters,
    ``where`` is a list of (column, operator, value) tuples where operator is
    any PostgREST operator (gte, lte, gt, lt, neq, is, not.is).
    """

    def __init__(self, access_token: str, base_url: str = SUPABASE_URL, api_key: str = SUPABASE_ANON_KEY,
                 transport: httpx.AsyncBaseTransport | None = None):
        if not base_url or not api_key:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")
        self.access_token = access_token
        self.base_url = f"{base_url}/rest/v1"
        self.api_key = api_key
        self.transport = transport

    def _headers(self, prefer: str = "return=representation") -> dict:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "Prefer": prefer,
        }

    @staticmethod
    def _query(
        filters: dict | None = None,
        where: list | None = None,
        search: tuple | None = None,
    ) -> list[str]:
        parts = []
        for key, value in (filters or {}).items():
            parts.append(f"{key}=eq.{_encode(value)}")
        for column, op, value in where or []:
            parts.append(f"{column}={op}.{_encode(value)}")
        if search:
            columns, term = search
            pattern = quote(f"*{term}*", safe="*")
            parts.append("or=(" + ",".join(f"{c}.ilike.{pattern}" for c in columns) + ")")
        return parts

    async def _request(self, method: str, table: str, params: list[str], prefer: str, json=None,
                       extra_headers: dict | None = None) -> httpx.Response:
        url = f"{self.base_url}/{table}"
        if params:
            url += "?" + "&".join(params)
        headers = self._headers(prefer)
        if extra_headers:
            headers.update(extra_headers)
        try:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT, transport=self.transport) as client:
                resp = await client.request(method, url, headers=headers,
                                            json=jsonable_encoder(json) if json is not None else None)
        except httpx.HTTPError as e:
            logger.error("PostgREST %s %s unreachable: %s", method, table, e)
            raise DatabaseError("Database unavailable")

        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            raise_for_code(body.get("code"), table, body.get("message") or resp.text)
        return resp

    # ------------------------------------------------------------------
    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: dict | None = None,
        where: list | None = None,
        search: tuple | None = None,
        order: list | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict]:
        """Select rows. ``order`` is a list of (column, ascending) pairs."""
        rows, _ = await self._select(table, columns, filters, where, search, order, limit, offset, False)
        return rows

    async def select_with_count(self, table: str, columns: str = "*", filters: dict | None = None,
                                where: list | None = None, search: tuple | None = None,
                                order: list | None = None, limit: int | None = None,
                                offset: int | None = None) -> tuple[list[dict], int]:
        """Select one page of rows plus the exact total matching count."""
        return await self._select(table, columns, filters, where, search, order, limit, offset, True)

    async def _select(self, table, columns, filters, where, search, order, limit, offset, count):
        params = [f"select={quote(''.join(columns.split()), safe='*,:()!.')}"]
        params += self._query(filters, where, search)
        if order:
            params.append("order=" + ",".join(f"{c}.{'asc' if asc else 'desc'}" for c, asc in order))
        if limit is not None:
            params.append(f"limit={int(limit)}")
        if offset:
            params.append(f"offset={int(offset)}")

        prefer = "count=exact" if count else ""
        resp = await self._request("GET", table, params, prefer)
        rows = resp.json()
        total = 0
        if count:
            # content-range: 0-19/134 (or */0 when empty)
            content_range = resp.headers.get("content-range", "*/0")
            try:
                total = int(content_range.split("/")[-1])
            except ValueError:
                total = len(rows)
        return rows, total

    async def select_one(self, table: str, columns: str = "*", filters: dict | None = None) -> dict | None:
        rows = await self.select(table, columns=columns, filters=filters, limit=1)
        return rows[0] if rows else None

    async def insert(self, table: str, data, columns: str = "*") -> list[dict]:
        """Insert one row (dict) or a batch (list of dicts); returns created rows."""
        params = [f"select={quote(''.join(columns.split()), safe='*,:()!.')}"]
        resp = await self._request("POST", table, params, "return=representation", json=data)
        return resp.json()

    async def insert_one(self, table: str, data: dict, columns: str = "*") -> dict:
        rows = await self.insert(table, data, columns)
        return rows[0] if rows else {}

    async def upsert(self, table: str, data: dict, on_conflict: str, columns: str = "*") -> dict:
        """Insert-or-update keyed by the unique constraint on ``on_conflict`` columns."""
        params = [f"select={quote(''.join(columns.split()), safe='*,:()!.')}", f"on_conflict={on_conflict}"]
        resp = await self._request("POST", table, params,
                                   "return=representation,resolution=merge-duplicates", json=data)
        rows = resp.json()
        return rows[0] if rows else {}

    async def update(self, table: str, filters: dict, data: dict, columns: str = "*") -> list[dict]:
        """Update matching rows and return them (empty list when nothing matched)."""
        params = [f"select={quote(''.join(columns.split()), safe='*,:()!.')}"] + self._query(filters)
        resp = await self._request("PATCH", table, params, "return=representation", json=data)
        return resp.json()

    async def delete(self, table: str, filters: dict) -> list[dict]:
        resp = await self._request("DELETE", table, self._query(filters), "return=representation")
        return resp.json()


def get_db(scope: UserScope = Depends(get_user_scope)) -> SupabaseRest:
    """FastAPI dependency - a data-access handle carrying the caller's token."""
    return SupabaseRest(scope.access_token)
