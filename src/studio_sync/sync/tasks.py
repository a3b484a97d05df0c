"""Fire-and-forget task spawning with isolated error handling."""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """
    Spawns coroutines without awaiting them.

    Each task gets its own error handler: failures are logged with the
    description given at spawn time and never reach the caller.  Running
    tasks are held in a set so they are not garbage-collected mid-flight.

    Tasks spawned with the same ``key`` run one after another in spawn
    order, so two writes to the same remote row land in call order.
    Tasks with different keys (or no key) run concurrently.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        # key -> (lock, number of spawned tasks still holding or awaiting it)
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}
        self.failures = 0

    @property
    def pending(self) -> int:
        return len(self._tasks)

    @property
    def ordering_keys(self) -> int:
        return len(self._locks)

    def spawn(
        self,
        coro: Coroutine[Any, Any, Any],
        description: str,
        key: str | None = None,
    ) -> asyncio.Task[Any] | None:
        """
        Schedule *coro* on the running loop.

        Args:
            coro: Coroutine to run
            description: Context included in the failure log line
            key: Optional ordering key (e.g. ``"clients/c-123"``)

        Returns:
            The task, or None when no event loop is running (the coroutine
            is closed and the work is skipped).
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.warning(f"No running event loop; skipped {description}")
            return None

        key = key or None
        if key is not None:
            lock, users = self._locks.get(key, (asyncio.Lock(), 0))
            self._locks[key] = (lock, users + 1)
        task = loop.create_task(self._guard(coro, description, key))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(
        self,
        coro: Coroutine[Any, Any, Any],
        description: str,
        key: str | None,
    ) -> Any:
        try:
            if key is None:
                return await coro
            async with self._locks[key][0]:
                return await coro
        except asyncio.CancelledError:
            coro.close()
            raise
        except Exception as e:
            self.failures += 1
            error_msg = str(e) or f"{type(e).__name__} (no details)"
            logger.error(f"Background write failed ({description}): {error_msg}")
            return None
        finally:
            if key is not None:
                self._release(key)

    def _release(self, key: str) -> None:
        lock, users = self._locks[key]
        if users <= 1:
            del self._locks[key]
        else:
            self._locks[key] = (lock, users - 1)

    async def drain(self) -> None:
        """Wait until every task spawned so far (and any they spawn) has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
