"""Change watcher implementations."""

from itemstore.infrastructure.watch.manual import ManualChangeWatcher
from itemstore.infrastructure.watch.pump import NotificationPump
from itemstore.infrastructure.watch.filesystem import WatchdogChangeWatcher

__all__ = [
    "ManualChangeWatcher",
    "NotificationPump",
    "WatchdogChangeWatcher",
]
