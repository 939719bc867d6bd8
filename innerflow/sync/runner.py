"""
Event loop runner for synchronous callers.

Flask handles requests on its own threads, while the sync core expects a
single event loop thread where local writes and background reconciliation
interleave cooperatively. The runner owns that loop; callers hand it plain
functions or coroutines and block only for their immediate result.
"""
import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class LoopRunner:
    """Runs an asyncio event loop on a dedicated daemon thread."""

    def __init__(self, name: str = 'innerflow-sync'):
        self.name = name
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._started = threading.Event()

    def start(self) -> 'LoopRunner':
        if self._thread is not None and self._thread.is_alive():
            return self

        self.loop = asyncio.new_event_loop()
        self._started.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        self._started.wait()
        logger.info(f"Sync loop thread {self.name} started")
        return self

    def _run(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.call_soon(self._started.set)
        self.loop.run_forever()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run(self, coro: Awaitable[T], timeout: Optional[float] = None) -> T:
        """Run a coroutine on the loop and wait for its result."""
        if not self.running:
            raise RuntimeError("Loop runner is not started")
        return asyncio.run_coroutine_threadsafe(coro, self.loop).result(timeout)

    def call(self, func: Callable[..., T], *args: Any, timeout: Optional[float] = None) -> T:
        """Call a plain function on the loop thread and wait for its result.

        Background tasks the function starts keep running on the loop after
        this returns.
        """
        async def invoke():
            return func(*args)

        return self.run(invoke(), timeout)

    def stop(self, drain: Optional[Callable[[], Awaitable[None]]] = None, timeout: float = 10.0) -> None:
        """Stop the loop, optionally waiting for background work first."""
        if not self.running:
            return
        if drain is not None:
            try:
                self.run(drain(), timeout)
            except Exception as e:
                logger.warning(f"Background sync did not finish before shutdown: {e}")
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning(f"Sync loop thread {self.name} did not stop within {timeout}s")
            return
        self.loop.close()
        logger.info(f"Sync loop thread {self.name} stopped")
