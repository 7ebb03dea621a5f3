"""Persistent store protocol.

The store is a single serialized collection: a blob that can be read and
replaced as a whole, plus a last-modification signal.
"""

from typing import Protocol

__all__ = ["PersistentStore"]


class PersistentStore(Protocol):
    """Protocol for the durable holder of the serialized collection.

    Example implementations:
    - FileStore: one JSON file on the local filesystem
    - InMemoryStore: bytes in memory with a synthetic clock (tests)

    Example:
        >>> store = FileStore("data/items.json")
        >>> signal = await store.modified_ns()
        >>> raw = await store.read_bytes()
        >>> await store.write_bytes(b"[]")
    """

    @property
    def location(self) -> str:
        """Human-readable location of the store, for logs."""
        ...

    async def read_bytes(self) -> bytes:
        """Read the whole serialized collection.

        Raises:
            StoreIOError: If the store is missing or unreadable
        """
        ...

    async def write_bytes(self, data: bytes) -> None:
        """Replace the whole serialized collection.

        Raises:
            StoreIOError: If the write fails. The previous content is kept.
        """
        ...

    async def modified_ns(self) -> int:
        """Current last-modification signal.

        Raises:
            StoreIOError: If the store is missing or cannot be inspected
        """
        ...

    async def exists(self) -> bool:
        """Whether the store currently exists."""
        ...
