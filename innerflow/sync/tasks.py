"""
Keyed registry of fire-and-forget background tasks.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """At most one in-flight task per key.

    Spawning a key that is already running returns the running task instead
    of starting a second one. Finished tasks are dropped from the registry;
    their exceptions are logged, never re-raised.
    """

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}

    def in_flight(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    def spawn(self, key: str, factory: Callable[[], Awaitable]) -> Optional[asyncio.Task]:
        """Start ``factory()`` as a task under ``key`` unless one is running.

        Args:
            key: Deduplication key.
            factory: Called only when a new task is actually started.

        Returns:
            The running task for the key, or None without a running event loop.
        """
        running = self._tasks.get(key)
        if running is not None and not running.done():
            logger.debug(f"Background task {key} already in flight")
            return running

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop, skipping background task {key}")
            return None

        task = loop.create_task(factory(), name=f"innerflow:{key}")
        self._tasks[key] = task
        task.add_done_callback(lambda finished: self._finished(key, finished))
        return task

    def _finished(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        if task.cancelled():
            logger.debug(f"Background task {key} was cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background task {key} failed: {error}", exc_info=error)

    async def drain(self) -> None:
        """Wait until no task is in flight, including tasks started meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)
            # Done callbacks run on the next loop iteration
            await asyncio.sleep(0)

    def __len__(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())
