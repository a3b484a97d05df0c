"""Bounded activity trail, mirrored to the local cache and the remote store."""

import json
import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from ..cache import LocalCache
from ..models import ActivityEntry, Severity
from ..remote import RemoteStoreClient
from .tasks import BackgroundTasks

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50

_SEVERITY_LEVELS = {
    Severity.SUCCESS: logging.INFO,
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}

_entries_adapter = TypeAdapter(list[ActivityEntry])


class ActivityLog:
    """Newest-first list of ActivityEntry, truncated to ``limit`` entries."""

    def __init__(
        self,
        cache: LocalCache,
        cache_key: str,
        remote: RemoteStoreClient,
        tasks: BackgroundTasks,
        limit: int = DEFAULT_LIMIT,
    ):
        self.cache = cache
        self.cache_key = cache_key
        self.remote = remote
        self.tasks = tasks
        self.limit = limit
        self._entries: list[ActivityEntry] = self._load()

    @property
    def entries(self) -> list[ActivityEntry]:
        return list(self._entries)

    def _load(self) -> list[ActivityEntry]:
        try:
            raw = self.cache.read(self.cache_key)
        except Exception as e:
            logger.error(f"Failed to read activity log: {e}")
            return []
        if not raw:
            return []
        try:
            return _entries_adapter.validate_python(json.loads(raw))[: self.limit]
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Activity log corrupted, starting empty: {e}")
            return []

    def _persist(self) -> None:
        try:
            payload = _entries_adapter.dump_json(self._entries).decode()
            self.cache.write(self.cache_key, payload)
        except Exception as e:
            logger.error(f"Failed to write activity log: {e}")

    def record(
        self,
        label: str,
        category: str,
        severity: Severity | str = Severity.INFO,
        metadata: dict[str, Any] | None = None,
    ) -> ActivityEntry:
        """
        Prepend a new entry and mirror it remotely (best effort).

        Args:
            label: Human-readable description
            category: Area of the console (crm, content, billing, sync, ...)
            severity: success, info, warning or error
            metadata: Optional JSON-serializable details

        Returns:
            The new entry
        """
        entry = ActivityEntry(
            label=label,
            category=category,
            severity=Severity(severity),
            metadata=metadata,
        )
        self._entries = [entry, *self._entries][: self.limit]
        self._persist()

        logger.log(
            _SEVERITY_LEVELS[entry.severity],
            "[%s/%s] %s",
            category,
            entry.severity.value,
            label,
        )

        if self.remote.is_configured:
            self.tasks.spawn(self.remote.insert_activity(entry), f"activity log {entry.id}")
        return entry

    def success(self, label: str, category: str, metadata: dict[str, Any] | None = None):
        return self.record(label, category, Severity.SUCCESS, metadata)

    def info(self, label: str, category: str, metadata: dict[str, Any] | None = None):
        return self.record(label, category, Severity.INFO, metadata)

    def warning(self, label: str, category: str, metadata: dict[str, Any] | None = None):
        return self.record(label, category, Severity.WARNING, metadata)

    def error(self, label: str, category: str, error: BaseException | str):
        return self.record(
            label,
            category,
            Severity.ERROR,
            {"message": str(error) or type(error).__name__},
        )

    def adopt(self, entries: list[ActivityEntry]) -> None:
        """Seed the log from remote history when nothing is held locally."""
        if self._entries or not entries:
            return
        self._entries = sorted(entries, key=lambda e: e.timestamp.timestamp(), reverse=True)[
            : self.limit
        ]
        self._persist()

    def clear(self) -> None:
        self._entries = []
        self._persist()
