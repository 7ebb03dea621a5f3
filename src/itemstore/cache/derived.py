"""Aggregate cache that piggybacks on the primary cache's freshness token."""

import asyncio
from typing import Callable, Generic, Optional, TypeVar

from itemstore.cache.primary import PrimaryCache
from itemstore.domain.types import Collection, FreshnessToken
from itemstore.logger import get_logger

logger = get_logger("cache.derived")

A = TypeVar("A")


class DerivedCache(Generic[A]):
    """Caches an aggregate computed over the primary cache's collection.

    The aggregate is recomputed only when the primary cache's freshness token
    differs from the one recorded with the last result. Checking is a token
    comparison; no store or decode work happens on a hit.

    Example:
        >>> stats = DerivedCache(cache, compute_item_stats)
        >>> await stats.get()
        ItemStats(total=2, average_price=150.0)
    """

    def __init__(self, primary: PrimaryCache, compute: Callable[[Collection], A], name: str = "aggregate"):
        """
        Args:
            primary: Cache providing the collection and its freshness token
            compute: Pure function from collection to aggregate
            name: Label used in logs
        """
        self._primary = primary
        self._compute = compute
        self._name = name
        self._lock = asyncio.Lock()
        self._aggregate: Optional[A] = None
        self._observed_token: Optional[FreshnessToken] = None
        self.recompute_count = 0

    async def get(self) -> A:
        """Return the aggregate, recomputing it if the collection changed.

        Raises:
            StoreIOError, DecodeError: Propagated from the primary cache
            EmptyAggregateError: If the aggregate is undefined for the collection
        """
        cached = self._cached_for(self._primary.freshness_token())
        if cached is not None:
            return cached

        async with self._lock:
            cached = self._cached_for(self._primary.freshness_token())
            if cached is not None:
                return cached

            snapshot = await self._primary.snapshot()
            aggregate = self._compute(snapshot.collection)
            self._aggregate, self._observed_token = aggregate, snapshot.token
            self.recompute_count += 1
            logger.debug(f"Recomputed {self._name} over {len(snapshot.collection)} records ({snapshot.token})")
            return aggregate

    def _cached_for(self, token: Optional[FreshnessToken]) -> Optional[A]:
        if self._aggregate is None or token != self._observed_token:
            return None
        return self._aggregate

    def invalidate(self) -> None:
        """Drop the cached aggregate."""
        self._aggregate = None
        self._observed_token = None

    @property
    def observed_token(self) -> Optional[FreshnessToken]:
        return self._observed_token
