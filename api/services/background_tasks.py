"""Background task processing for fire-and-forget work."""

import asyncio
import contextlib
from collections.abc import Callable

import structlog

logger = structlog.get_logger(__name__)


class BackgroundTaskQueue:
    """In-memory task queue with a single worker.

    Tasks run one at a time in enqueue order. Their exceptions are logged and
    never reach the code that enqueued them.
    """

    def __init__(self):
        self.queue: asyncio.Queue = asyncio.Queue()
        self.worker_task: asyncio.Task | None = None
        self._running = False

    async def start_worker(self):
        """Start background worker."""
        if self._running:
            logger.warning("background_worker_already_running")
            return

        self._running = True
        self.worker_task = asyncio.create_task(self._worker())
        logger.info("background_worker_started")

    async def stop_worker(self, drain: bool = True):
        """Stop background worker, finishing queued tasks first unless ``drain`` is false."""
        if not self._running:
            return

        if drain and self.worker_task and not self.worker_task.done():
            await self.queue.join()

        self._running = False

        if self.worker_task:
            self.worker_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self.worker_task
            logger.info("background_worker_stopped", dropped=self.queue.qsize())

    async def _worker(self):
        """Process tasks from queue."""
        while self._running:
            try:
                task_func, args, kwargs = await self.queue.get()
            except asyncio.CancelledError:
                break

            try:
                await task_func(*args, **kwargs)
            except asyncio.CancelledError:
                self.queue.task_done()
                break
            except Exception as e:
                logger.error(
                    "background_task_execution_error",
                    task=getattr(task_func, "__name__", repr(task_func)),
                    error=str(e),
                )
            self.queue.task_done()

    def enqueue(self, task_func: Callable, *args, **kwargs):
        """Add task to queue.

        Args:
            task_func: Async function to execute
            *args: Positional arguments for task_func
            **kwargs: Keyword arguments for task_func
        """
        self.queue.put_nowait((task_func, args, kwargs))
        logger.debug(
            "task_enqueued",
            task=getattr(task_func, "__name__", repr(task_func)),
            queue_size=self.queue.qsize(),
        )

    async def wait_for_completion(self):
        """Wait for all queued tasks to complete."""
        await self.queue.join()
