"""Caching layer for itemstore.

PrimaryCache holds the decoded collection; DerivedCache holds aggregates that
follow the primary cache's freshness token.
"""

from itemstore.cache.derived import DerivedCache
from itemstore.cache.primary import CacheStats, PrimaryCache

__all__ = [
    "CacheStats",
    "DerivedCache",
    "PrimaryCache",
]
