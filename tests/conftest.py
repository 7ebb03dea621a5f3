"""Shared fixtures and store doubles for itemstore tests."""

import asyncio
import json
from typing import Any

import pytest

from itemstore.infrastructure.store import InMemoryStore

ITEMS = [
    {"id": 1, "name": "Laptop Pro", "category": "Electronics", "price": 2499},
    {"id": 2, "name": "Noise Cancelling Headphones", "category": "Electronics", "price": 399},
    {"id": 3, "name": "Ultra-Wide Monitor", "category": "Electronics", "price": 999},
    {"id": 4, "name": "Ergonomic Chair", "category": "Furniture", "price": 799},
    {"id": 5, "name": "Standing Desk", "category": "Furniture", "price": 1199},
]


def encode(records: list[dict[str, Any]]) -> bytes:
    return json.dumps(records).encode("utf-8")


class SlowStore(InMemoryStore):
    """In-memory store whose reads and writes yield to the event loop."""

    def __init__(self, *args, delay: float = 0.01, **kwargs):
        super().__init__(*args, **kwargs)
        self.delay = delay

    async def read_bytes(self) -> bytes:
        await asyncio.sleep(self.delay)
        return await super().read_bytes()

    async def write_bytes(self, data: bytes) -> None:
        await asyncio.sleep(self.delay)
        await super().write_bytes(data)


class CoarseClockStore(InMemoryStore):
    """In-memory store whose writes never move the modification signal.

    Mimics a filesystem with a timestamp resolution coarser than the write rate.
    """

    async def write_bytes(self, data: bytes) -> None:
        await super().write_bytes(data)
        self._modified_ns -= 1


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep ITEMSTORE_* variables from the developer's shell out of tests."""
    import os

    for name in list(os.environ):
        if name.startswith("ITEMSTORE_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def items_store():
    """In-memory store seeded with five items."""
    return InMemoryStore(encode(ITEMS))


@pytest.fixture
def items_file(tmp_path):
    """Items JSON file on disk."""
    path = tmp_path / "data" / "items.json"
    path.parent.mkdir()
    path.write_text(json.dumps(ITEMS, indent=2), encoding="utf-8")
    return path
