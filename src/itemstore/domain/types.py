"""Shared domain types."""

from dataclasses import dataclass
from typing import Any, Optional

__all__ = ["Record", "Collection", "FreshnessToken", "CacheSnapshot"]

Record = dict[str, Any]
Collection = list[Record]


@dataclass(frozen=True, order=True)
class FreshnessToken:
    """Marks which store state a cached value was produced from.

    Attributes:
        modified_ns: Store's last-modification signal (nanosecond mtime for files)
        generation: Local counter, advanced on every invalidation

    Only inequality matters to dependents. ``generation`` keeps two writes
    distinguishable even when the store's timestamp resolution collapses
    them into the same ``modified_ns``.
    """

    modified_ns: int
    generation: int = 0

    def advance(self, modified_ns: Optional[int] = None) -> "FreshnessToken":
        """Return the next token, optionally with a new store signal."""
        return FreshnessToken(
            modified_ns=self.modified_ns if modified_ns is None else modified_ns,
            generation=self.generation + 1,
        )


@dataclass(frozen=True)
class CacheSnapshot:
    """A collection together with the token it belongs to."""

    collection: Collection
    token: Optional[FreshnessToken]
