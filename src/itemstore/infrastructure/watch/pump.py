"""
Notification pump shared by change watchers.

Notifications may originate on any thread. The pump moves them onto an
asyncio.Queue owned by the event loop and a single background worker awaits
the watcher callback for each one, in FIFO order. The callback therefore only
ever runs on the loop, never on the notifier's thread.
"""

import asyncio
from typing import Optional

from itemstore.domain.protocols.watcher import ChangeCallback
from itemstore.logger import get_logger

logger = get_logger("watch.pump")


class NotificationPump:
    """
    Async FIFO delivery of change notifications to one callback.

    Lifecycle:
        1. ``start(callback)`` on the event loop
        2. ``post(description)`` from any thread
        3. ``stop()`` to cancel the worker

    Error Handling:
        - Callback exceptions are logged and counted, the worker keeps running
        - Posts after ``stop()`` are dropped, as are notifications still queued
    """

    def __init__(self, name: str = "NotificationPump"):
        self._name = name
        self._queue: Optional[asyncio.Queue[str]] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._worker_task: Optional[asyncio.Task] = None
        self._callback: Optional[ChangeCallback] = None
        self._running = False
        self.delivered = 0
        self.failures = 0

    async def start(self, callback: ChangeCallback) -> None:
        if self._running:
            logger.warning(f"{self._name} already running")
            return

        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._callback = callback
        self._running = True
        self._worker_task = asyncio.create_task(self._worker())
        logger.debug(f"{self._name} started")

    async def stop(self) -> None:
        if not self._running:
            return

        self._running = False
        if self._worker_task and not self._worker_task.done():
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
        self._worker_task = None
        # Discard what the worker never got to so join() cannot hang
        dropped = 0
        while self._queue is not None and not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1
        if dropped:
            logger.debug(f"{self._name}: dropped {dropped} undelivered notification(s)")
        logger.debug(f"{self._name} stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    def post(self, description: str) -> None:
        """Queue a notification. Safe to call from any thread."""
        loop = self._loop
        if not self._running or loop is None or loop.is_closed():
            logger.debug(f"{self._name}: dropping notification after stop ({description})")
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            self._enqueue(description)
            return
        try:
            loop.call_soon_threadsafe(self._enqueue, description)
        except RuntimeError:
            # Loop closed between the check and the call
            logger.debug(f"{self._name}: event loop closed, dropping {description}")

    def _enqueue(self, description: str) -> None:
        if self._queue is not None and self._running:
            self._queue.put_nowait(description)

    async def join(self) -> None:
        """Wait until every queued notification has been handled.

        Returns at once when the pump is not running.
        """
        if self._queue is not None and self._running:
            await self._queue.join()

    async def _worker(self) -> None:
        assert self._queue is not None and self._callback is not None

        while self._running:
            try:
                description = await self._queue.get()
                try:
                    await self._callback(description)
                    self.delivered += 1
                except Exception as e:
                    self.failures += 1
                    logger.exception(f"Error in {self._name} callback: {e}")
                finally:
                    self._queue.task_done()
            except asyncio.CancelledError:
                logger.debug(f"{self._name} worker task cancelled")
                break
