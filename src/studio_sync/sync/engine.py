"""Reconciliation engine: local-first state with fire-and-forget remote writes."""

import asyncio
import copy
import json
import logging
import re
import secrets
import time
from collections.abc import Callable, Coroutine
from typing import Any

from pydantic import ValidationError

from ..cache import LocalCache, SQLiteLocalCache
from ..config import AppConfig
from ..models import Record, SiteData, utcnow
from ..remote import RemoteStoreClient, RemoteStoreError
from ..schemas import (
    ENTITY_SCHEMAS,
    SETTINGS_FIELDS,
    SETTINGS_KEYS,
    EntitySchema,
    EntityType,
    InsertPosition,
    get_schema,
)
from ..seed import default_site_data, is_seed_id, seed_ids, seed_records
from .activity import ActivityLog
from .reconcile import apply_settings, merge_remote, parse_snapshot, settings_to_document
from .store import StateStore
from .tasks import BackgroundTasks

logger = logging.getLogger(__name__)

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(title: str) -> str:
    """Lowercase, dash-separated slug of *title* (empty if nothing usable remains)."""
    return _SLUG_STRIP.sub("-", title.lower()).strip("-")


def _entity_label(schema: EntitySchema) -> str:
    return schema.entity.value.replace("_", " ").capitalize()


class ReconciliationEngine:
    """
    Owns SiteData and keeps it in step with the local cache and the remote store.

    Every mutation is applied to memory (and the local snapshot) before the
    method returns.  The matching remote write is spawned as a background
    task whose payload is fixed at call time; writes to the same row are
    serialized in call order.
    """

    def __init__(
        self,
        store: StateStore,
        remote: RemoteStoreClient,
        activity: ActivityLog,
        tasks: BackgroundTasks,
    ):
        self.store = store
        self.remote = remote
        self.activity = activity
        self.tasks = tasks
        self._bootstrapped = False
        self._warned_local_only = False

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        cache: LocalCache | None = None,
        remote: RemoteStoreClient | None = None,
    ) -> "ReconciliationEngine":
        """Wire an engine from configuration, using the SQLite cache by default."""
        cache = cache if cache is not None else SQLiteLocalCache(config.cache.path)
        remote = remote if remote is not None else RemoteStoreClient.from_config(config.remote)
        tasks = BackgroundTasks()
        activity = ActivityLog(
            cache,
            config.cache.activity_key,
            remote,
            tasks,
            limit=config.sync.activity_limit,
        )
        store = StateStore(cache, config.cache.snapshot_key, initial=default_site_data())
        return cls(store, remote, activity, tasks)

    # ==================== State access ====================

    @property
    def state(self) -> SiteData:
        return self.store.state

    @property
    def is_loading(self) -> bool:
        return self.store.is_loading

    def subscribe(self, callback: Callable[[SiteData], None]) -> Callable[[], None]:
        return self.store.subscribe(callback)

    def collection(self, entity: EntityType | str) -> list[Record]:
        """Current records of one entity type."""
        return self.state.records(get_schema(entity).collection)

    # ==================== Bootstrap ====================

    async def bootstrap(self) -> SiteData:
        """
        Load the local snapshot, then merge in the remote store once.

        Returns:
            The published state after the merge (or the local state when
            the remote is unavailable)
        """
        if self._bootstrapped:
            return self.state
        self._bootstrapped = True

        self.store.publish(self._load_local())

        if not self._remote_ready():
            self.store.is_loading = False
            return self.state

        try:
            settings_document, remote_rows = await self._fetch_remote()
        except RemoteStoreError as e:
            logger.error(f"Remote store is not provisioned, keeping local data: {e}")
            self.store.is_loading = False
            return self.state

        self.store.publish(merge_remote(self.state, settings_document, remote_rows))
        self.store.is_loading = False
        logger.info("Bootstrap merge complete")

        await self._adopt_remote_activity()
        return self.state

    def _load_local(self) -> SiteData:
        raw = self.store.read_snapshot()
        if not raw:
            logger.debug("No local snapshot, starting from defaults")
            return default_site_data()
        try:
            return parse_snapshot(raw)
        except (json.JSONDecodeError, ValidationError, ValueError) as e:
            logger.error(f"Local snapshot unreadable, falling back to defaults: {e}")
            return default_site_data()

    async def _fetch_remote(
        self,
    ) -> tuple[dict[str, Any] | None, dict[EntityType, list[Record] | None]]:
        """
        Fetch the settings row and every entity table concurrently.

        Raises:
            RemoteStoreError: If any fetch reports a structural failure
        """
        entities = list(ENTITY_SCHEMAS)
        results = await asyncio.gather(
            self.remote.get_settings(),
            *(self.remote.list_all(ENTITY_SCHEMAS[e].table) for e in entities),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, RemoteStoreError) and result.is_structural:
                raise result

        settings_result, *table_results = results
        settings_document: dict[str, Any] | None = None
        if isinstance(settings_result, BaseException):
            logger.warning(f"Failed to fetch settings: {settings_result}")
        else:
            settings_document = settings_result

        remote_rows: dict[EntityType, list[Record] | None] = {}
        for entity, result in zip(entities, table_results):
            table = ENTITY_SCHEMAS[entity].table
            if isinstance(result, BaseException):
                logger.warning(f"Failed to fetch {table}: {result}")
                remote_rows[entity] = None
            else:
                logger.debug(f"Fetched {len(result)} rows from {table}")
                remote_rows[entity] = result
        return settings_document, remote_rows

    async def _adopt_remote_activity(self) -> None:
        try:
            entries = await self.remote.list_activity(self.activity.limit)
        except RemoteStoreError as e:
            logger.debug(f"Remote activity log unavailable: {e}")
            return
        self.activity.adopt(entries)

    # ==================== Record mutations ====================

    def create(self, entity: EntityType | str, payload: Record) -> str:
        """
        Add a new record and return its id.

        Args:
            entity: Entity type
            payload: Record fields; an ``id`` in here is ignored

        Returns:
            The generated id
        """
        schema = get_schema(entity)
        record_id = self._new_id(schema)

        record: Record = {**copy.deepcopy(schema.defaults), **copy.deepcopy(payload)}
        record["id"] = record_id
        if schema.audit_field and not record.get(schema.audit_field):
            record[schema.audit_field] = utcnow().isoformat()
        if schema.entity == EntityType.ARTICLE and not record.get("slug"):
            record["slug"] = slugify(str(record.get("title", ""))) or record_id

        current = self.state.records(schema.collection)
        if schema.position == InsertPosition.PREPEND:
            records = [record, *current]
        else:
            records = [*current, record]
        self.store.publish(self.state.model_copy(update={schema.collection: records}))

        self.activity.success(
            f"{_entity_label(schema)} created: {schema.describe(record)}",
            schema.category,
            {"entity": schema.entity.value, "id": record_id},
        )
        self._push_record(schema, record)
        return record_id

    def update(self, entity: EntityType | str, record_id: str, changes: Record) -> None:
        """
        Shallow-merge *changes* into an existing record.

        Unknown ids are ignored.  Seed records are read-only (they can only
        be hidden), so updates to them are refused with a warning.
        """
        schema = get_schema(entity)
        if is_seed_id(schema.entity, record_id):
            logger.warning(f"{record_id} is a seed {schema.entity.value} and cannot be edited")
            return
        existing = self.state.find(schema.collection, record_id)
        if existing is None:
            logger.debug(f"Update skipped, no {schema.entity.value} with id {record_id}")
            return

        updated = {**existing, **copy.deepcopy(changes), "id": record_id}
        records = [
            updated if r.get("id") == record_id else r
            for r in self.state.records(schema.collection)
        ]
        self.store.publish(self.state.model_copy(update={schema.collection: records}))

        self.activity.success(
            f"{_entity_label(schema)} updated: {schema.describe(updated)}",
            schema.category,
            {"entity": schema.entity.value, "id": record_id, "fields": sorted(changes)},
        )
        self._push_record(schema, updated)

    def delete(self, entity: EntityType | str, record_id: str) -> None:
        """
        Remove a record.

        Seed records cannot be deleted remotely, so their id is added to the
        hidden set instead and the settings row is re-synced.  Any other id
        is deleted from its remote table.
        """
        schema = get_schema(entity)
        if is_seed_id(schema.entity, record_id):
            self.hide_seed(schema.entity, record_id)
            return

        existing = self.state.find(schema.collection, record_id)
        if existing is None:
            logger.debug(f"Delete skipped, no {schema.entity.value} with id {record_id}")
            return

        records = [r for r in self.state.records(schema.collection) if r.get("id") != record_id]
        self.store.publish(self.state.model_copy(update={schema.collection: records}))

        self.activity.success(
            f"{_entity_label(schema)} deleted: {schema.describe(existing)}",
            schema.category,
            {"entity": schema.entity.value, "id": record_id},
        )
        if self._remote_ready():
            self._spawn_remote(
                self.remote.delete(schema.table, record_id),
                f"delete {schema.table}/{record_id}",
                key=f"{schema.table}/{record_id}",
            )

    def _push_record(self, schema: EntitySchema, record: Record) -> None:
        if not self._remote_ready():
            return
        record_id = record["id"]
        self._spawn_remote(
            self.remote.upsert(schema.table, record_id, copy.deepcopy(record)),
            f"upsert {schema.table}/{record_id}",
            key=f"{schema.table}/{record_id}",
        )

    @staticmethod
    def _new_id(schema: EntitySchema) -> str:
        return f"{schema.id_prefix}{int(time.time() * 1000)}-{secrets.token_hex(3)}"

    # ==================== Seed tombstones ====================

    def hide_seed(self, entity: EntityType | str, record_id: str) -> bool:
        """
        Hide a seed record durably.

        Returns:
            True if the id was newly hidden
        """
        schema = get_schema(entity)
        if not is_seed_id(schema.entity, record_id):
            logger.warning(f"{record_id} is not a seed {schema.entity.value}; not hiding")
            return False
        if record_id in self.state.hidden:
            logger.debug(f"{record_id} is already hidden")
            return False

        state = self.state
        hidden_ids = [*state.hidden_ids, record_id]
        records = [r for r in state.records(schema.collection) if r.get("id") != record_id]
        self.store.publish(
            state.model_copy(update={schema.collection: records, "hidden_ids": hidden_ids})
        )

        self.activity.success(
            f"{_entity_label(schema)} hidden: {record_id}",
            schema.category,
            {"entity": schema.entity.value, "id": record_id},
        )
        self._push_settings(["hidden_ids"])
        return True

    def restore_seed(self, entity: EntityType | str, record_id: str) -> bool:
        """
        Un-hide a seed record and put it back at its catalog position.

        Returns:
            True if the record was restored
        """
        schema = get_schema(entity)
        state = self.state
        if record_id not in state.hidden or not is_seed_id(schema.entity, record_id):
            logger.debug(f"{record_id} is not a hidden seed {schema.entity.value}")
            return False

        hidden_ids = [h for h in state.hidden_ids if h != record_id]
        current = state.records(schema.collection)
        records = list(current)
        if state.find(schema.collection, record_id) is None:
            catalog = seed_records(schema.entity)
            seed = next(r for r in catalog if r["id"] == record_id)
            order = [r["id"] for r in catalog]
            before = set(order[: order.index(record_id)])
            catalog_ids = seed_ids(schema.entity)
            # Insert after the last seed record that precedes it in the catalog.
            index = 0
            for i, r in enumerate(current):
                if r.get("id") in before:
                    index = i + 1
                elif r.get("id") not in catalog_ids:
                    break
            records.insert(index, seed)

        self.store.publish(
            state.model_copy(update={schema.collection: records, "hidden_ids": hidden_ids})
        )
        self.activity.success(
            f"{_entity_label(schema)} restored: {record_id}",
            schema.category,
            {"entity": schema.entity.value, "id": record_id},
        )
        self._push_settings(["hidden_ids"])
        return True

    # ==================== Settings ====================

    def update_settings(self, changes: dict[str, Any]) -> None:
        """
        Merge settings-class fields and push them in a single upsert.

        Args:
            changes: Field name -> value.  Both attribute names
                (``contact_info``) and remote keys (``contactInfo``) are
                accepted; anything else is ignored with a warning.
        """
        normalized: dict[str, Any] = {}
        for name, value in changes.items():
            if name in SETTINGS_FIELDS:
                normalized[name] = value
            elif name in SETTINGS_KEYS:
                normalized[SETTINGS_KEYS[name].name] = value
            else:
                logger.warning(f"Ignoring unknown settings field: {name}")
        if not normalized:
            return

        self.store.publish(apply_settings(self.state, normalized))
        names = list(normalized)
        self.activity.success(
            f"Settings updated: {', '.join(SETTINGS_FIELDS[n].key for n in names)}",
            "system",
        )
        self._push_settings(names)

    def update_profile(self, changes: dict[str, Any]) -> None:
        self.update_settings({"profile": changes})

    def update_ai_config(self, changes: dict[str, Any]) -> None:
        self.update_settings({"ai_config": changes})

    def update_brand(self, changes: dict[str, Any]) -> None:
        self.update_settings({"brand": changes})

    def update_contact_info(self, changes: dict[str, Any]) -> None:
        self.update_settings({"contact_info": changes})

    def _push_settings(self, names: list[str]) -> None:
        if not self._remote_ready():
            return
        document = copy.deepcopy(settings_to_document(self.state, names))
        self._spawn_remote(
            self.remote.upsert_settings(document),
            f"upsert settings ({', '.join(document)})",
            key="settings",
        )

    # ==================== Lifecycle ====================

    def reset_to_default(self) -> None:
        """Drop the local snapshot and go back to the compiled defaults (local only)."""
        self.store.clear_snapshot()
        self.store.publish(default_site_data())
        self.activity.info("Local data reset to defaults", "system")

    async def drain(self) -> None:
        """Wait for every pending remote write."""
        await self.tasks.drain()

    async def close(self) -> None:
        await self.drain()
        await self.remote.close()

    def _spawn_remote(self, coro: Coroutine[Any, Any, Any], description: str, key: str) -> None:
        if self.tasks.spawn(coro, description, key=key) is None:
            # Local state already moved on; make the divergence visible.
            self.activity.warning(
                f"Remote write skipped (no event loop): {description}",
                "sync",
                {"write": description},
            )

    def _remote_ready(self) -> bool:
        if self.remote.is_configured:
            return True
        if not self._warned_local_only:
            logger.warning("Remote store not configured. Running in local-only mode.")
            self._warned_local_only = True
        return False
