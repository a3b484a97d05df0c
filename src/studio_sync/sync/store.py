"""Observable holder for the single SiteData instance."""

import logging
from collections.abc import Callable

from ..cache import LocalCache
from ..models import SiteData

logger = logging.getLogger(__name__)

Subscriber = Callable[[SiteData], None]


class StateStore:
    """
    Owns the current SiteData reference and its durable local copy.

    ``publish`` swaps the reference, writes the snapshot through to the
    local cache and notifies subscribers, in that order.  The snapshot
    write is coupled to every publish but never raises.
    """

    def __init__(self, cache: LocalCache, snapshot_key: str, initial: SiteData | None = None):
        self.cache = cache
        self.snapshot_key = snapshot_key
        self._state = initial if initial is not None else SiteData()
        self._subscribers: list[Subscriber] = []
        self.is_loading = True

    @property
    def state(self) -> SiteData:
        return self._state

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback*; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, next_state: SiteData) -> None:
        self._state = next_state
        self.persist()
        for callback in list(self._subscribers):
            try:
                callback(next_state)
            except Exception:
                logger.exception("State subscriber %r failed", callback)

    def persist(self) -> None:
        """Write the current state to the local cache, logging any failure."""
        try:
            self.cache.write(self.snapshot_key, self._state.to_snapshot())
        except Exception as e:
            logger.error(f"Failed to write local snapshot: {e}")

    def read_snapshot(self) -> str | None:
        try:
            return self.cache.read(self.snapshot_key)
        except Exception as e:
            logger.error(f"Failed to read local snapshot: {e}")
            return None

    def clear_snapshot(self) -> None:
        try:
            self.cache.remove(self.snapshot_key)
        except Exception as e:
            logger.error(f"Failed to clear local snapshot: {e}")
