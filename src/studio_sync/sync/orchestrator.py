"""Bulk push of the seed article catalog and the settings document."""

import asyncio
import logging
from collections.abc import Callable

from ..config import SyncConfig
from ..models import Record, SyncStatus, utcnow
from ..remote import RemoteStoreClient
from ..schemas import ARTICLE_SCHEMA, EntityType
from ..seed import seed_records
from .activity import ActivityLog
from .reconcile import settings_to_document
from .store import StateStore

# Progress callback: receives a copy of the status after every change
ProgressCallback = Callable[[SyncStatus], None]

logger = logging.getLogger(__name__)


class SeedSyncOrchestrator:
    """Pushes compiled seed content to the remote store with visible progress."""

    def __init__(
        self,
        store: StateStore,
        remote: RemoteStoreClient,
        activity: ActivityLog,
        item_delay: float = 0.05,
        grace_period: float = 1.5,
    ):
        self.store = store
        self.remote = remote
        self.activity = activity
        self.item_delay = item_delay
        self.grace_period = grace_period
        self.status = SyncStatus()
        self._listeners: list[ProgressCallback] = []
        self._warned_local_only = False

    @classmethod
    def from_config(
        cls,
        config: SyncConfig,
        store: StateStore,
        remote: RemoteStoreClient,
        activity: ActivityLog,
    ) -> "SeedSyncOrchestrator":
        return cls(
            store,
            remote,
            activity,
            item_delay=config.item_delay_ms / 1000,
            grace_period=config.grace_period_seconds,
        )

    def add_listener(self, callback: ProgressCallback) -> Callable[[], None]:
        """Register a progress listener; returns a function that removes it."""
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    def _remote_ready(self) -> bool:
        if self.remote.is_configured:
            return True
        if not self._warned_local_only:
            logger.warning("Remote store not configured; push skipped (local-only mode)")
            self._warned_local_only = True
        return False

    def _notify(self) -> None:
        snapshot = self.status.snapshot()
        for callback in list(self._listeners):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Progress listener %r failed", callback)

    async def push_seed_articles(self, items: list[Record] | None = None) -> SyncStatus:
        """
        Upsert every seed article, one at a time.

        A failing item is counted and skipped; the loop always reaches the
        end of the batch.  A summary entry is added to the activity log.

        Args:
            items: Records to push (defaults to the seed article catalog)

        Returns:
            Final status.  Untouched when the remote is not configured.
        """
        if not self._remote_ready():
            return self.status.snapshot()

        items = items if items is not None else seed_records(EntityType.ARTICLE)
        table = ARTICLE_SCHEMA.table
        self.status = SyncStatus(total=len(items), current=0, error_count=0, is_syncing=True)
        self._notify()
        logger.info(f"Pushing {len(items)} seed articles to {table}")

        try:
            for item in items:
                record_id = item["id"]
                try:
                    await self.remote.upsert(table, record_id, item)
                except Exception as e:
                    self.status.error_count += 1
                    logger.error(
                        f"Failed to push {table}/{record_id} ({item.get('title', '?')}): {e}"
                    )
                self.status.current += 1
                self._notify()
                if self.item_delay:
                    await asyncio.sleep(self.item_delay)
        except Exception as e:
            self.activity.error("Seed sync could not run", "sync", e)
        else:
            failed = self.status.error_count
            pushed = self.status.total - failed
            metadata = {"total": self.status.total, "failed": failed}
            if failed:
                self.activity.warning(
                    f"Seed sync finished with errors: {pushed} pushed, {failed} failed",
                    "sync",
                    metadata,
                )
            else:
                self.activity.success(f"Seed sync complete: {pushed} articles pushed", "sync", metadata)

        if self.grace_period:
            await asyncio.sleep(self.grace_period)
        self.status.is_syncing = False
        self._notify()
        return self.status.snapshot()

    async def push_settings(self) -> bool:
        """
        Upsert the full settings document (last write wins).

        Returns:
            True on success.  Failures are logged and recorded, never raised.
        """
        if not self._remote_ready():
            return False

        document = settings_to_document(self.store.state)
        document["updated_at"] = utcnow().isoformat()
        try:
            await self.remote.upsert_settings(document)
        except Exception as e:
            self.activity.error("Settings push failed", "sync", e)
            return False

        self.activity.success("Settings pushed to remote store", "sync")
        return True
