"""Domain protocols - interfaces for store and watcher implementations.

Using protocols keeps the caches independent of the filesystem and of the
notification library, and lets tests substitute deterministic doubles.
"""

from itemstore.domain.protocols.store import PersistentStore
from itemstore.domain.protocols.watcher import ChangeCallback, ChangeWatcher

__all__ = [
    "PersistentStore",
    "ChangeWatcher",
    "ChangeCallback",
]
