"""Quiescence-window debouncing for remote pushes."""

import asyncio
from collections.abc import Awaitable, Callable, Hashable

import structlog

logger = structlog.get_logger(__name__)


class Debouncer:
    """Run ``callback`` once activity has been quiet for ``delay`` seconds.

    Each ``trigger`` restarts the window. Triggering for a different key
    cancels the pending call for the previous key, so a push scheduled while
    editing one note never fires after switching to another. Once the
    callback has started it always runs to completion, and calls never
    overlap: a window that closes while the previous call is still running
    waits for it.
    """

    def __init__(self, delay: float, callback: Callable[[], Awaitable[object]]):
        self.delay = delay
        self._callback = callback
        self._task: asyncio.Task | None = None
        self._key: Hashable | None = None
        self._running: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def trigger(self, key: Hashable | None = None) -> None:
        """Start or restart the quiescence window."""
        if self.pending and key != self._key:
            logger.debug("debounce_switched_key", previous=self._key, key=key)
        self._drop_pending()
        self._key = key
        self._task = asyncio.get_running_loop().create_task(self._wait_then_run())

    def cancel(self) -> None:
        """Drop the pending call without running it."""
        if self.pending:
            logger.debug("debounce_cancelled", key=self._key)
        self._drop_pending()

    async def flush(self) -> None:
        """Wait for any call in flight, then run the pending call now."""
        had_pending = self.pending
        self._drop_pending()
        if self._running is not None and not self._running.done():
            await self._running
        if had_pending:
            await self._run()

    def _drop_pending(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _wait_then_run(self) -> None:
        await asyncio.sleep(self.delay)
        # Detach before running so a later trigger or cancel cannot interrupt the callback.
        self._task = None
        previous = self._running
        self._running = asyncio.get_running_loop().create_task(self._run(after=previous))

    async def _run(self, after: asyncio.Task | None = None) -> None:
        if after is not None and not after.done():
            await after
        try:
            await self._callback()
        except Exception as e:
            logger.error("debounced_call_failed", key=self._key, error=str(e))
