"""Application layer - record-store operations built on the caches."""

from itemstore.application.items import ItemCreate, ItemPage, ItemService, Pagination
from itemstore.application.repository import ItemRepository
from itemstore.application.stats import ItemStats, compute_item_stats

__all__ = [
    "ItemCreate",
    "ItemPage",
    "ItemRepository",
    "ItemService",
    "ItemStats",
    "Pagination",
    "compute_item_stats",
]
