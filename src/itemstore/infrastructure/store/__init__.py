"""Persistent store implementations.

Concrete implementations of the PersistentStore protocol for different
backends.
"""

from itemstore.infrastructure.store.file import FileStore
from itemstore.infrastructure.store.memory import InMemoryStore

__all__ = [
    "FileStore",
    "InMemoryStore",
]
