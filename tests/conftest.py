"""Shared fixtures: an in-memory remote store double and engine wiring."""

import asyncio
import copy
from typing import Any

import pytest

from studio_sync.cache import MemoryLocalCache
from studio_sync.models import ActivityEntry, Record
from studio_sync.remote import RemoteNotConfiguredError, RemoteStoreError
from studio_sync.seed import default_site_data
from studio_sync.sync import ActivityLog, BackgroundTasks, ReconciliationEngine, StateStore

SNAPSHOT_KEY = "studio_full_platform_data"
ACTIVITY_KEY = "studio_activity_log"


class FakeRemoteStore:
    """
    Stand-in for RemoteStoreClient that keeps rows in dicts.

    Every call is appended to ``calls`` as a tuple.  Failures can be
    injected per table (reads), per record id (writes), or as a
    structural "relation does not exist" error per table.
    """

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.tables: dict[str, list[Record]] = {}
        self.settings: dict[str, Any] | None = None
        self.activity: list[ActivityEntry] = []
        self.calls: list[tuple[Any, ...]] = []
        self.fail_tables: set[str] = set()
        self.fail_ids: set[str] = set()
        self.structural_tables: set[str] = set()
        self.fail_settings = False
        # Popped one per upsert call; lets a test make an early write slow.
        self.write_delays: list[float] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    def _check(self) -> None:
        if not self.configured:
            raise RemoteNotConfiguredError()

    def calls_named(self, name: str) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == name]

    async def list_all(self, table: str) -> list[Record]:
        self._check()
        self.calls.append(("list_all", table))
        if table in self.structural_tables:
            raise RemoteStoreError(
                f'relation "public.{table}" does not exist', 404, "42P01"
            )
        if table in self.fail_tables:
            raise RemoteStoreError(f"API error on {table}: 500", 500)
        return copy.deepcopy(self.tables.get(table, []))

    async def upsert(self, table: str, record_id: str, payload: Record) -> None:
        self._check()
        self.calls.append(("upsert", table, record_id, copy.deepcopy(payload)))
        if self.write_delays:
            await asyncio.sleep(self.write_delays.pop(0))
        if record_id in self.fail_ids:
            raise RemoteStoreError(f"API error on {table}: 500", 500)
        rows = [r for r in self.tables.get(table, []) if r.get("id") != record_id]
        rows.append({**copy.deepcopy(payload), "id": record_id})
        self.tables[table] = rows

    async def delete(self, table: str, record_id: str) -> None:
        self._check()
        self.calls.append(("delete", table, record_id))
        self.tables[table] = [r for r in self.tables.get(table, []) if r.get("id") != record_id]

    async def get_settings(self) -> dict[str, Any] | None:
        self._check()
        self.calls.append(("get_settings",))
        if self.fail_settings:
            raise RemoteStoreError("API error on site_settings: 500", 500)
        return copy.deepcopy(self.settings)

    async def upsert_settings(self, partial: dict[str, Any]) -> None:
        self._check()
        self.calls.append(("upsert_settings", copy.deepcopy(partial)))
        if self.fail_settings:
            raise RemoteStoreError("API error on site_settings: 500", 500)
        self.settings = {**(self.settings or {}), **copy.deepcopy(partial), "id": "main"}

    async def insert_activity(self, entry: ActivityEntry) -> None:
        self._check()
        self.calls.append(("insert_activity", entry.id))
        self.activity.append(entry)

    async def list_activity(self, limit: int = 50) -> list[ActivityEntry]:
        self._check()
        self.calls.append(("list_activity", limit))
        return sorted(self.activity, key=lambda e: e.timestamp, reverse=True)[:limit]

    async def ping(self) -> bool:
        self._check()
        return True

    async def close(self) -> None:
        pass


@pytest.fixture
def cache() -> MemoryLocalCache:
    return MemoryLocalCache()


@pytest.fixture
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def offline_remote() -> FakeRemoteStore:
    return FakeRemoteStore(configured=False)


def build_engine(cache: MemoryLocalCache, remote: FakeRemoteStore) -> ReconciliationEngine:
    tasks = BackgroundTasks()
    activity = ActivityLog(cache, ACTIVITY_KEY, remote, tasks)  # type: ignore[arg-type]
    store = StateStore(cache, SNAPSHOT_KEY, initial=default_site_data())
    return ReconciliationEngine(store, remote, activity, tasks)  # type: ignore[arg-type]


@pytest.fixture
def engine(cache, remote) -> ReconciliationEngine:
    return build_engine(cache, remote)


@pytest.fixture
def offline_engine(cache, offline_remote) -> ReconciliationEngine:
    return build_engine(cache, offline_remote)


@pytest.fixture
def engine_factory():
    """Build further engines over an existing cache/remote (simulates a restart)."""
    return build_engine
