"""Remote store client (Supabase / PostgREST over HTTP)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from ..models import ActivityEntry, Record
from ..schemas import ACTIVITY_TABLE, SETTINGS_ROW_ID, SETTINGS_TABLE
from .mapper import activity_to_row, record_to_row, row_to_activity, rows_to_records

if TYPE_CHECKING:
    from ..config import RemoteConfig

logger = logging.getLogger(__name__)

# Postgres "undefined_table" and PostgREST "table not in schema cache".
STRUCTURAL_ERROR_CODES = {"42P01", "PGRST205"}


class RemoteStoreError(Exception):
    """Base exception for remote store errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        response: Any = None,
    ):
        full_message = message
        if response:
            text = str(response)
            full_message = f"{message} - Response: {text[:500]}"
        super().__init__(full_message)
        self.status_code = status_code
        self.code = code
        self.response = response

    @property
    def is_structural(self) -> bool:
        """True when the backend is not provisioned (missing tables)."""
        if self.code in STRUCTURAL_ERROR_CODES:
            return True
        return "does not exist" in str(self).lower() and "relation" in str(self).lower()


class RemoteNotConfiguredError(RemoteStoreError):
    """Raised by every operation when no URL/key is configured."""

    def __init__(self) -> None:
        super().__init__("Remote store is not configured")


class RemoteStoreClient:
    """Client for the per-entity tables and the singleton settings row."""

    def __init__(
        self,
        url: str | None,
        api_key: str | None,
        schema_name: str = "public",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the remote store client.

        Args:
            url: Project URL (e.g., https://xyz.supabase.co); None for local-only mode
            api_key: API key sent as ``apikey`` and bearer token
            schema_name: Postgres schema exposed over REST
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.url = url.rstrip("/") if url else None
        self.api_key = api_key
        self.schema_name = schema_name
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(cls, config: RemoteConfig) -> RemoteStoreClient:
        return cls(
            url=config.url,
            api_key=config.anon_key,
            schema_name=config.schema_name,
            timeout=config.timeout,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.api_key)

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if not self.is_configured:
            raise RemoteNotConfiguredError()
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=f"{self.url}/rest/v1",
                headers={
                    "apikey": self.api_key or "",
                    "Authorization": f"Bearer {self.api_key}",
                    "Accept-Profile": self.schema_name,
                    "Content-Profile": self.schema_name,
                },
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> RemoteStoreClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Make an HTTP request to the REST endpoint."""
        logger.debug("%s /%s params=%s", method, path, params)
        try:
            response = await self.client.request(
                method, path, params=params, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"{method} /{path} failed: {e}") from e

        if response.status_code >= 400:
            code = None
            detail: Any = response.text
            try:
                body = response.json()
                if isinstance(body, dict):
                    code = body.get("code")
                    detail = body.get("message") or detail
            except ValueError:
                pass
            raise RemoteStoreError(
                f"API error on {path}: {response.status_code}",
                response.status_code,
                code,
                detail,
            )

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise RemoteStoreError(
                f"Invalid JSON from /{path}", response.status_code, response=response.text
            ) from e

    @staticmethod
    def _expect_rows(path: str, body: Any) -> list[dict[str, Any]]:
        """Check that a read returned a JSON array of row objects."""
        if body is None:
            return []
        if not isinstance(body, list) or not all(isinstance(r, dict) for r in body):
            raise RemoteStoreError(f"Unexpected payload from /{path}: expected a list of rows")
        return body

    # ==================== Entity tables ====================

    async def list_all(self, table: str) -> list[Record]:
        """Fetch every row of *table* as flattened records."""
        rows = await self._request("GET", table, params={"select": "*"})
        return rows_to_records(self._expect_rows(table, rows))

    async def upsert(self, table: str, record_id: str, payload: Record) -> None:
        """Insert or replace one row keyed by id."""
        await self._request(
            "POST",
            table,
            params={"on_conflict": "id"},
            json=record_to_row(record_id, payload),
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    async def delete(self, table: str, record_id: str) -> None:
        """Delete one row by id."""
        await self._request("DELETE", table, params={"id": f"eq.{record_id}"})

    # ==================== Settings document ====================

    async def get_settings(self) -> dict[str, Any] | None:
        """Fetch the singleton settings row, or None if it does not exist yet."""
        rows = await self._request(
            "GET",
            SETTINGS_TABLE,
            params={"select": "*", "id": f"eq.{SETTINGS_ROW_ID}"},
        )
        rows = self._expect_rows(SETTINGS_TABLE, rows)
        if not rows:
            return None
        return rows[0]

    async def upsert_settings(self, partial: dict[str, Any]) -> None:
        """Merge *partial* columns into the singleton settings row."""
        await self._request(
            "POST",
            SETTINGS_TABLE,
            params={"on_conflict": "id"},
            json={**partial, "id": SETTINGS_ROW_ID},
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    # ==================== Activity log ====================

    async def insert_activity(self, entry: ActivityEntry) -> None:
        await self._request(
            "POST",
            ACTIVITY_TABLE,
            json=activity_to_row(entry),
            headers={"Prefer": "return=minimal"},
        )

    async def list_activity(self, limit: int = 50) -> list[ActivityEntry]:
        """Fetch the most recent activity entries, newest first."""
        rows = await self._request("GET", ACTIVITY_TABLE, params={"select": "*"})
        rows = self._expect_rows(ACTIVITY_TABLE, rows)
        entries = [e for e in (row_to_activity(r) for r in rows) if e is not None]
        entries.sort(key=lambda e: e.timestamp.timestamp(), reverse=True)
        return entries[:limit]

    async def ping(self) -> bool:
        """Check that the settings table is reachable."""
        await self._request("GET", SETTINGS_TABLE, params={"select": "id", "limit": "1"})
        return True
