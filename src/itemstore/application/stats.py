"""Item statistics aggregate."""

import statistics
from dataclasses import dataclass
from numbers import Real

from itemstore.domain.exceptions import DecodeError, EmptyAggregateError
from itemstore.domain.types import Collection


@dataclass(frozen=True)
class ItemStats:
    """Count and mean price of the collection."""

    total: int
    average_price: float

    def to_dict(self) -> dict[str, float]:
        return {"total": self.total, "averagePrice": self.average_price}


def compute_item_stats(collection: Collection, field: str = "price") -> ItemStats:
    """
    Compute count and arithmetic mean of ``field`` over the collection.

    Args:
        collection: Records to aggregate
        field: Numeric field present on every record

    Returns:
        ItemStats

    Raises:
        EmptyAggregateError: If the collection is empty
        DecodeError: If a record lacks a numeric ``field``
    """
    if not collection:
        raise EmptyAggregateError(f"Cannot average '{field}' over an empty collection")

    values = []
    for record in collection:
        value = record.get(field)
        if isinstance(value, bool) or not isinstance(value, Real):
            raise DecodeError(f"Record {record.get('id')!r} has no numeric '{field}': {value!r}")
        values.append(value)

    return ItemStats(total=len(values), average_price=statistics.fmean(values))
