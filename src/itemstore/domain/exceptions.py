"""Domain exceptions for the item store."""

__all__ = [
    "ItemStoreError",
    "DecodeError",
    "StoreIOError",
    "EmptyAggregateError",
    "ConflictError",
    "ItemNotFoundError",
    "WatcherDegraded",
]


class ItemStoreError(Exception):
    """Base class for all item store errors."""


class DecodeError(ItemStoreError, ValueError):
    """Store content cannot be parsed into a collection."""


class StoreIOError(ItemStoreError, OSError):
    """Store could not be read, written or inspected."""


class EmptyAggregateError(ItemStoreError):
    """Aggregate requested over an empty collection (mean is undefined)."""


class ConflictError(ItemStoreError):
    """A compare-and-swap write found the store changed since it was read.

    Attributes:
        expected: Token the caller based its write on
        actual: Store signal or token observed at write time
    """

    def __init__(self, message: str, expected=None, actual=None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class ItemNotFoundError(ItemStoreError, KeyError):
    """No record with the requested id."""

    def __init__(self, item_id: int):
        super().__init__(item_id)
        self.item_id = item_id

    def __str__(self) -> str:
        return f"Item not found: {self.item_id}"


class WatcherDegraded(ItemStoreError):
    """Change watching is unavailable or a notification could not be handled.

    Never raised to callers. The cache records it so the widened staleness
    window is observable.
    """
