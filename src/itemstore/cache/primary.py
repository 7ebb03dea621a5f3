"""Read-through, write-invalidated cache over the persistent store.

PrimaryCache owns the decoded collection and its freshness token. Both fields
only change together, inside one asyncio.Lock: cache fills, writes and
watcher invalidations are serialized through it, so a fill can never overwrite
a concurrent write and concurrent misses share a single store load.

Invalidation is lazy. Neither writes nor change notifications reload the
collection; the next ``read()`` does.

Read-modify-write sequences (``read()`` → mutate → ``write()``) can lose
updates when two of them interleave. Callers that care pass the token they
read as ``expected_token`` and handle ``ConflictError``.
"""

import asyncio
from dataclasses import asdict, dataclass
from typing import Any, Optional

from itemstore.cache.codec import decode_collection, encode_collection
from itemstore.domain.exceptions import ConflictError, StoreIOError, WatcherDegraded
from itemstore.domain.protocols import ChangeWatcher, PersistentStore
from itemstore.domain.types import CacheSnapshot, Collection, FreshnessToken
from itemstore.logger import get_logger

logger = get_logger("cache.primary")

_UNSET: Any = object()


@dataclass
class CacheStats:
    """Counters describing cache activity."""

    hits: int = 0
    loads: int = 0
    writes: int = 0
    invalidations: int = 0
    ignored_notifications: int = 0
    notification_failures: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class PrimaryCache:
    """Coherent cached access to a persisted collection.

    Example:
        >>> cache = PrimaryCache(FileStore("data/items.json"), WatchdogChangeWatcher("data/items.json"))
        >>> await cache.start()
        >>> items = await cache.read()
        >>> await cache.write(items + [{"id": 3, "price": 300}])
        >>> await cache.close()
    """

    def __init__(self, store: PersistentStore, watcher: Optional[ChangeWatcher] = None):
        """
        Initialize the cache.

        Args:
            store: Persistent store holding the serialized collection
            watcher: Optional change watcher. Without one the cache only sees
                     its own writes.
        """
        self._store = store
        self._watcher = watcher
        self._lock = asyncio.Lock()
        self._collection: Optional[Collection] = None
        self._token: Optional[FreshnessToken] = None
        self._stats = CacheStats()
        self._watch_error: Optional[WatcherDegraded] = None
        self._last_notification_error: Optional[WatcherDegraded] = None
        self._started = False
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Seed the freshness token from the store and begin watching.

        A missing store leaves the token unset. A watcher that cannot be
        started is recorded as degraded; the cache keeps working.
        """
        if self._started:
            return
        self._started = True

        async with self._lock:
            try:
                self._token = FreshnessToken(await self._store.modified_ns())
                logger.debug(f"Seeded freshness token from {self._store.location}: {self._token}")
            except StoreIOError:
                logger.info(f"Store {self._store.location} does not exist yet, nothing cached")

        if self._watcher is None:
            logger.info("Change watching disabled, only local writes invalidate the cache")
            return

        try:
            await self._watcher.start(self.invalidate)
        except Exception as e:
            self._watch_error = WatcherDegraded(f"Watcher setup failed: {e}")
            logger.warning(
                f"Change watcher unavailable for {self._store.location}: {e}. "
                "External modifications will not invalidate the cache"
            )

    async def close(self) -> None:
        """Stop the change watcher. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self._watcher is not None and self._watch_error is None:
            await self._watcher.stop()

    async def __aenter__(self) -> "PrimaryCache":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def read(self) -> Collection:
        """Return the collection, loading it from the store on a miss.

        Raises:
            StoreIOError: If the store cannot be read
            DecodeError: If the store content is malformed
        """
        return (await self.snapshot()).collection

    async def snapshot(self) -> CacheSnapshot:
        """Return the collection together with the token it belongs to.

        Raises:
            StoreIOError: If the store cannot be read
            DecodeError: If the store content is malformed
        """
        if self._collection is not None:
            self._stats.hits += 1
            return CacheSnapshot(self._collection, self._token)

        async with self._lock:
            # Another caller may have filled the cache while we waited
            if self._collection is not None:
                self._stats.hits += 1
                return CacheSnapshot(self._collection, self._token)
            return await self._fill()

    async def _fill(self) -> CacheSnapshot:
        # Signal first: a change racing the read can only make the token older
        # than the content, which costs one extra reload later, never staleness.
        signal = await self._store.modified_ns()
        raw = await self._store.read_bytes()
        collection = decode_collection(raw)

        if self._token is None:
            token = FreshnessToken(signal)
        elif self._token.modified_ns != signal:
            token = self._token.advance(signal)
        else:
            token = self._token

        self._collection, self._token = collection, token
        self._stats.loads += 1
        logger.debug(f"Loaded {len(collection)} records from {self._store.location} ({token})")
        return CacheSnapshot(collection, token)

    def freshness_token(self) -> Optional[FreshnessToken]:
        """Current freshness token. Never touches the store."""
        return self._token

    @property
    def is_cached(self) -> bool:
        return self._collection is not None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def write(self, collection: Collection, *, expected_token: Optional[FreshnessToken] = _UNSET) -> FreshnessToken:
        """Replace the stored collection and invalidate the cache.

        Args:
            collection: Full collection to persist (replace semantics)
            expected_token: Compare-and-swap guard. When given, the write only
                            happens if neither the store nor this cache has
                            moved since the caller observed this token. Pass
                            None to require that the store did not exist.

        Returns:
            The freshness token after the write

        Raises:
            StoreIOError: If the write fails. Cache state is left unchanged.
            ConflictError: If ``expected_token`` no longer matches
            ValueError: If the collection is not JSON-serializable
        """
        payload = encode_collection(collection)

        async with self._lock:
            if expected_token is not _UNSET:
                await self._check_expected(expected_token)

            await self._store.write_bytes(payload)
            self._stats.writes += 1

            try:
                signal = await self._store.modified_ns()
            except StoreIOError:
                # Written but not confirmable; force dependents and the next read to reload
                self._mark_stale(None)
                raise

            self._mark_stale(signal)
            logger.debug(f"Wrote {len(collection)} records to {self._store.location} ({self._token})")
            return self._token

    async def _check_expected(self, expected: Optional[FreshnessToken]) -> None:
        try:
            signal: Optional[int] = await self._store.modified_ns()
        except StoreIOError:
            signal = None

        expected_signal = expected.modified_ns if expected is not None else None
        if signal != expected_signal:
            if self._token is None or signal != self._token.modified_ns:
                # The store moved beyond what this cache recorded; the retry must reload
                self._mark_stale(signal)
            raise ConflictError(
                f"Store {self._store.location} changed since it was read",
                expected=expected,
                actual=signal,
            )
        if expected is not None and self._token != expected:
            raise ConflictError(
                f"Cache token moved since it was read ({expected} -> {self._token})",
                expected=expected,
                actual=self._token,
            )

    # ------------------------------------------------------------------
    # External change handling
    # ------------------------------------------------------------------

    async def invalidate(self, reason: str = "notification") -> None:
        """Handle one external change notification.

        Drops the cached collection when the store's modification signal moved
        away from the recorded token; duplicate notifications for the same
        signal are ignored. If the store cannot be inspected the collection is
        dropped regardless and the token's generation advances.
        """
        async with self._lock:
            try:
                signal = await self._store.modified_ns()
            except StoreIOError as e:
                self._mark_stale(None)
                self._stats.notification_failures += 1
                self._last_notification_error = WatcherDegraded(f"Cannot inspect store after {reason}: {e}")
                logger.warning(f"{self._last_notification_error}; assuming the cache is stale")
                return

            if self._token is not None and self._token.modified_ns == signal:
                self._stats.ignored_notifications += 1
                logger.debug(f"Ignoring notification ({reason}): store unchanged")
                return

            self._mark_stale(signal)
            self._stats.invalidations += 1
            logger.debug(f"Invalidated cache after {reason} ({self._token})")

    def _mark_stale(self, signal: Optional[int]) -> None:
        """Drop the collection and advance the token. Caller holds the lock.

        A None signal keeps the last-known modification signal.
        """
        self._collection = None
        if self._token is not None:
            self._token = self._token.advance(signal)
        elif signal is not None:
            self._token = FreshnessToken(signal)

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def stats(self) -> CacheStats:
        return self._stats

    @property
    def is_watching(self) -> bool:
        return self._watcher is not None and self._watch_error is None and self._watcher.is_running

    @property
    def watcher_degraded(self) -> bool:
        """True when external modifications may go unnoticed."""
        if self._watcher is None or not self._started or self._closed:
            return False
        return self._watch_error is not None or not self._watcher.is_running

    @property
    def degraded_reason(self) -> Optional[str]:
        if self._watch_error is not None:
            return str(self._watch_error)
        if self.watcher_degraded:
            return "Change watcher stopped"
        return None

    @property
    def last_notification_error(self) -> Optional[WatcherDegraded]:
        return self._last_notification_error
