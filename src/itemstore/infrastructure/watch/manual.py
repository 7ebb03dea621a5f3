"""Manually driven change watcher.

Used by tests and by embedders that learn about store changes some other
way (a message bus, a polling loop). Notifications are delivered through the
same NotificationPump as the filesystem watcher.
"""

from itemstore.domain.protocols.watcher import ChangeCallback
from itemstore.infrastructure.watch.pump import NotificationPump


class ManualChangeWatcher:
    """Change watcher whose notifications are sent explicitly via ``notify``.

    Example:
        >>> watcher = ManualChangeWatcher()
        >>> await watcher.start(cache.invalidate)
        >>> watcher.notify()
        >>> await watcher.join()  # notification handled
    """

    def __init__(self, fail_on_start: bool = False):
        """
        Args:
            fail_on_start: Raise from ``start`` to simulate watcher setup failure
        """
        self._pump = NotificationPump(name="watch:manual")
        self._fail_on_start = fail_on_start

    async def start(self, callback: ChangeCallback) -> None:
        if self._fail_on_start:
            raise OSError("Simulated watcher setup failure")
        await self._pump.start(callback)

    async def stop(self) -> None:
        await self._pump.stop()

    @property
    def is_running(self) -> bool:
        return self._pump.is_running

    @property
    def delivered(self) -> int:
        return self._pump.delivered

    def notify(self, description: str = "change") -> None:
        """Send one change notification (thread-safe)."""
        self._pump.post(description)

    async def join(self) -> None:
        """Wait until every sent notification has been handled."""
        await self._pump.join()
