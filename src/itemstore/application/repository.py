"""Wiring of store, watcher, caches and service for one items file."""

from functools import partial
from typing import Any, Optional

from itemstore.application.items import ItemService
from itemstore.application.stats import ItemStats, compute_item_stats
from itemstore.cache import DerivedCache, PrimaryCache
from itemstore.cache.codec import encode_collection
from itemstore.config import StoreConfig
from itemstore.domain.protocols import ChangeWatcher, PersistentStore
from itemstore.infrastructure.store import FileStore
from itemstore.infrastructure.watch import WatchdogChangeWatcher
from itemstore.logger import get_logger

logger = get_logger("repository")


class ItemRepository:
    """Owns the caches for one collection and their lifecycle.

    Example:
        >>> async with ItemRepository(StoreConfig.from_env()) as repo:
        ...     page = await repo.service.list_items(q="desk")
        ...     stats = await repo.service.stats()
    """

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        *,
        store: Optional[PersistentStore] = None,
        watcher: Optional[ChangeWatcher] = None,
    ):
        """
        Args:
            config: Store configuration (defaults to ``StoreConfig()``)
            store: Store override. Defaults to a FileStore on ``config.data_path``.
            watcher: Watcher override. Defaults to a WatchdogChangeWatcher on the
                     same file when ``config.watch`` is set, else no watcher.
        """
        self.config = config or StoreConfig()
        self.store: PersistentStore = store or FileStore(self.config.data_path)
        if watcher is None and self.config.watch and isinstance(self.store, FileStore):
            watcher = WatchdogChangeWatcher(self.store.path)

        self.cache = PrimaryCache(self.store, watcher)
        self.stats_cache: DerivedCache[ItemStats] = DerivedCache(
            self.cache,
            partial(compute_item_stats, field=self.config.aggregate_field),
            name="item stats",
        )
        self.service = ItemService(self.cache, self.stats_cache, write_retries=self.config.write_retries)

    async def start(self) -> None:
        if self.config.create_missing and not await self.store.exists():
            logger.info(f"Creating empty collection at {self.store.location}")
            await self.store.write_bytes(encode_collection([]))
        await self.cache.start()
        logger.info(f"Item repository ready: {self.store.location}")

    async def close(self) -> None:
        await self.cache.close()

    async def __aenter__(self) -> "ItemRepository":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def status(self) -> dict[str, Any]:
        """Snapshot of cache state for diagnostics."""
        token = self.cache.freshness_token()
        return {
            "store": self.store.location,
            "cached": self.cache.is_cached,
            "token": None if token is None else {"modified_ns": token.modified_ns, "generation": token.generation},
            "watching": self.cache.is_watching,
            "watcher_degraded": self.cache.watcher_degraded,
            "degraded_reason": self.cache.degraded_reason,
            "stats_recomputes": self.stats_cache.recompute_count,
            "counters": self.cache.stats.to_dict(),
        }
