"""In-memory persistent store.

Holds the serialized collection as bytes with a synthetic modification clock.
Used by tests and for development where nothing should touch the disk. It
counts every operation so tests can assert how often the store was touched.
"""

from typing import Optional

from itemstore.domain.exceptions import StoreIOError
from itemstore.logger import get_logger

logger = get_logger("store.memory")


class InMemoryStore:
    """In-memory store for testing and development.

    Each successful write advances the modification signal by one tick.
    ``external_write`` simulates another process replacing the content, and
    the ``fail_*`` flags simulate an unavailable store.

    Thread-safe for asyncio (single-threaded event loop).

    Example:
        >>> store = InMemoryStore(b'[{"id": 1, "price": 10}]')
        >>> await store.read_bytes()
        b'[{"id": 1, "price": 10}]'
        >>> store.reads
        1
    """

    def __init__(self, initial: Optional[bytes] = None, modified_ns: int = 1_000) -> None:
        """Initialize the store.

        Args:
            initial: Initial content. None means the store does not exist yet.
            modified_ns: Initial modification signal
        """
        self._data: Optional[bytes] = initial
        self._modified_ns = modified_ns
        self.reads = 0
        self.writes = 0
        self.stats = 0
        self.fail_reads = False
        self.fail_writes = False
        self.fail_stats = False
        logger.debug("InMemoryStore initialized (state will not persist)")

    @property
    def location(self) -> str:
        return "memory://items"

    @property
    def content(self) -> Optional[bytes]:
        return self._data

    async def read_bytes(self) -> bytes:
        self.reads += 1
        if self.fail_reads:
            raise StoreIOError("Simulated read failure")
        if self._data is None:
            raise StoreIOError(f"Store does not exist: {self.location}")
        return self._data

    async def write_bytes(self, data: bytes) -> None:
        if self.fail_writes:
            raise StoreIOError("Simulated write failure")
        self.writes += 1
        self._data = data
        self._modified_ns += 1

    async def modified_ns(self) -> int:
        self.stats += 1
        if self.fail_stats or self._data is None:
            raise StoreIOError(f"Cannot inspect store: {self.location}")
        return self._modified_ns

    async def exists(self) -> bool:
        return self._data is not None

    def external_write(self, data: bytes, advance: int = 1) -> None:
        """Replace the content as another process would.

        Args:
            data: New content
            advance: Ticks to move the modification signal (0 keeps it)
        """
        self._data = data
        self._modified_ns += advance

    def delete(self) -> None:
        """Remove the content as if the backing file were deleted."""
        self._data = None
