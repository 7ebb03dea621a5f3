"""Item service: search, pagination, lookup and creation on top of the caches.

Filtering and pagination run over the cached collection in memory. Creation
is a read-modify-write and uses the cache's compare-and-swap write, retrying
a bounded number of times when another writer got there first.
"""

import math
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from itemstore.application.stats import ItemStats
from itemstore.cache import DerivedCache, PrimaryCache
from itemstore.domain.exceptions import ConflictError, ItemNotFoundError
from itemstore.domain.types import Collection, Record
from itemstore.logger import get_logger
from itemstore.utils import now_millis

logger = get_logger("items")


class ItemCreate(BaseModel):
    """Payload accepted by ``create_item``. Extra fields are kept as-is."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1)
    price: Union[int, float] = Field(..., ge=0)
    category: Optional[str] = None


class Pagination(BaseModel):
    """Pagination metadata for a page of items."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")
    has_next: bool = Field(alias="hasNext")
    has_prev: bool = Field(alias="hasPrev")


class ItemPage(BaseModel):
    """One page of search results."""

    model_config = ConfigDict(frozen=True)

    items: list[dict[str, Any]]
    pagination: Pagination

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


def paginate(records: Collection, page: int = 1, limit: int = 10) -> ItemPage:
    """
    Slice one page out of ``records``.

    Raises:
        ValueError: If page or limit is below 1
    """
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    total = len(records)
    total_pages = math.ceil(total / limit)
    start = (page - 1) * limit
    return ItemPage(
        items=records[start:start + limit],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        ),
    )


def filter_by_name(records: Collection, query: Optional[str]) -> Collection:
    """Case-insensitive substring match on ``name``. Empty query matches all."""
    if not query:
        return records
    needle = query.lower()
    return [r for r in records if needle in str(r.get("name", "")).lower()]


class ItemService:
    """Record-store operations used by the CLI and embedding applications."""

    def __init__(
        self,
        cache: PrimaryCache,
        stats_cache: DerivedCache[ItemStats],
        write_retries: int = 3,
        id_factory: Callable[[], int] = now_millis,
    ):
        """
        Args:
            cache: Primary cache over the items store
            stats_cache: Derived cache computing ItemStats
            write_retries: Extra attempts after a ConflictError in create_item
            id_factory: Source of candidate ids (epoch milliseconds by default)
        """
        self._cache = cache
        self._stats_cache = stats_cache
        self._write_retries = write_retries
        self._id_factory = id_factory

    async def list_items(self, q: Optional[str] = None, page: int = 1, limit: int = 10) -> ItemPage:
        records = await self._cache.read()
        return paginate(filter_by_name(records, q), page=page, limit=limit)

    async def get_item(self, item_id: int) -> Record:
        records = await self._cache.read()
        for record in records:
            if record.get("id") == item_id:
                return record
        raise ItemNotFoundError(item_id)

    async def create_item(self, payload: Mapping[str, Any]) -> Record:
        """
        Validate ``payload``, assign an id and append it to the collection.

        Returns:
            The stored record

        Raises:
            pydantic.ValidationError: If the payload is invalid
            ConflictError: If the store kept changing through every retry
            StoreIOError, DecodeError: Propagated from the cache
        """
        fields = ItemCreate.model_validate(dict(payload)).model_dump(exclude_none=True)

        last_error: Optional[ConflictError] = None
        for attempt in range(self._write_retries + 1):
            snapshot = await self._cache.snapshot()
            records = list(snapshot.collection)
            item = {**fields, "id": self._next_id(records)}
            records.append(item)
            try:
                await self._cache.write(records, expected_token=snapshot.token)
            except ConflictError as e:
                last_error = e
                logger.warning(f"Create conflicted (attempt {attempt + 1}/{self._write_retries + 1}): {e}")
                continue

            logger.info(f"Created item id={item['id']} name='{item['name']}'")
            return item

        assert last_error is not None
        raise last_error

    async def stats(self) -> ItemStats:
        return await self._stats_cache.get()

    def _next_id(self, records: Collection) -> int:
        highest = max((r["id"] for r in records if isinstance(r.get("id"), int)), default=0)
        return max(self._id_factory(), highest + 1)
