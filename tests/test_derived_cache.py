"""Unit tests for DerivedCache and the item stats aggregate."""

import asyncio

import pytest

from itemstore.application.stats import ItemStats, compute_item_stats
from itemstore.cache import DerivedCache, PrimaryCache
from itemstore.domain.exceptions import DecodeError, EmptyAggregateError, StoreIOError
from itemstore.infrastructure.store import InMemoryStore
from itemstore.infrastructure.watch import ManualChangeWatcher

from conftest import CoarseClockStore, SlowStore, encode

PRICED = [{"id": 1, "price": 100}, {"id": 2, "price": 200}]


async def _stats_cache(store, watcher=None):
    primary = PrimaryCache(store, watcher)
    await primary.start()
    return primary, DerivedCache(primary, compute_item_stats, name="item stats")


class TestComputeItemStats:
    """The pure aggregate function."""

    def test_count_and_mean(self):
        stats = compute_item_stats(PRICED)
        assert stats == ItemStats(total=2, average_price=150.0)
        assert stats.to_dict() == {"total": 2, "averagePrice": 150.0}

    def test_empty_collection_raises(self):
        with pytest.raises(EmptyAggregateError):
            compute_item_stats([])

    def test_custom_field(self):
        stats = compute_item_stats([{"id": 1, "weight": 2}, {"id": 2, "weight": 4}], field="weight")
        assert stats.average_price == 3.0

    def test_missing_field_raises(self):
        with pytest.raises(DecodeError):
            compute_item_stats([{"id": 1, "price": 10}, {"id": 2}])

    def test_boolean_is_not_numeric(self):
        with pytest.raises(DecodeError):
            compute_item_stats([{"id": 1, "price": True}])


class TestDerivedCache:
    """Token-driven recomputation."""

    @pytest.mark.asyncio
    async def test_scenario_write_then_cached(self):
        """150 → write third record → 200, then served from cache."""
        store = InMemoryStore(encode(PRICED))
        primary, stats = await _stats_cache(store)

        assert (await stats.get()).to_dict() == {"total": 2, "averagePrice": 150.0}

        await primary.write(PRICED + [{"id": 3, "price": 300}])
        after_write = await stats.get()
        assert after_write.to_dict() == {"total": 3, "averagePrice": 200.0}

        reads, inspections = store.reads, store.stats
        again = await stats.get()

        assert again is after_write
        assert stats.recompute_count == 2
        assert (store.reads, store.stats) == (reads, inspections)

    @pytest.mark.asyncio
    async def test_many_gets_compute_once(self):
        """Repeated gets without a token change recompute exactly once."""
        store = InMemoryStore(encode(PRICED))
        _, stats = await _stats_cache(store)

        results = [await stats.get() for _ in range(5)]

        assert stats.recompute_count == 1
        assert store.reads == 1
        assert all(result is results[0] for result in results)

    @pytest.mark.asyncio
    async def test_recomputes_once_per_notification(self):
        """An external change seen by the watcher triggers one recomputation."""
        store = InMemoryStore(encode(PRICED))
        watcher = ManualChangeWatcher()
        primary, stats = await _stats_cache(store, watcher)
        await stats.get()

        store.external_write(encode([{"id": 9, "price": 40}]))
        watcher.notify()
        watcher.notify()
        await watcher.join()

        for _ in range(3):
            assert await stats.get() == ItemStats(total=1, average_price=40.0)
        assert stats.recompute_count == 2
        await primary.close()

    @pytest.mark.asyncio
    async def test_observed_token_matches_aggregated_snapshot(self):
        """The recorded token is the one that belongs to the aggregated data."""
        store = InMemoryStore(encode(PRICED))
        primary, stats = await _stats_cache(store)

        await stats.get()

        assert stats.observed_token == primary.freshness_token()

    @pytest.mark.asyncio
    async def test_unstarted_primary_cache(self):
        """A primary cache without a seeded token still feeds the aggregate once."""
        store = InMemoryStore(encode(PRICED))
        primary = PrimaryCache(store)
        stats = DerivedCache(primary, compute_item_stats)

        await stats.get()
        await stats.get()

        assert stats.recompute_count == 1

    @pytest.mark.asyncio
    async def test_empty_store_raises(self):
        """An empty collection fails with EmptyAggregateError, not NaN."""
        _, stats = await _stats_cache(InMemoryStore(b"[]"))

        with pytest.raises(EmptyAggregateError):
            await stats.get()

    @pytest.mark.asyncio
    async def test_store_errors_propagate(self):
        """Primary cache failures reach the caller unchanged."""
        store = InMemoryStore(encode(PRICED))
        store.fail_reads = True
        _, stats = await _stats_cache(store)

        with pytest.raises(StoreIOError):
            await stats.get()

    @pytest.mark.asyncio
    async def test_concurrent_gets_share_recomputation(self):
        """Concurrent misses compute the aggregate once."""
        store = SlowStore(encode(PRICED))
        _, stats = await _stats_cache(store)

        results = await asyncio.gather(*(stats.get() for _ in range(5)))

        assert stats.recompute_count == 1
        assert all(result is results[0] for result in results)

    @pytest.mark.asyncio
    async def test_write_seen_with_coarse_clock(self):
        """A write that leaves the store's timestamp unchanged still invalidates."""
        store = CoarseClockStore(encode(PRICED))
        primary, stats = await _stats_cache(store)
        await stats.get()
        signal_before = await store.modified_ns()

        await primary.write([{"id": 1, "price": 10}])

        assert await store.modified_ns() == signal_before
        assert await stats.get() == ItemStats(total=1, average_price=10.0)

    @pytest.mark.asyncio
    async def test_invalidate_forces_recompute(self):
        store = InMemoryStore(encode(PRICED))
        _, stats = await _stats_cache(store)
        await stats.get()

        stats.invalidate()
        await stats.get()

        assert stats.recompute_count == 2
        assert store.reads == 1
