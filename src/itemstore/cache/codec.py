"""JSON encoding of the persisted collection."""

import json

from itemstore.domain.exceptions import DecodeError
from itemstore.domain.types import Collection


def decode_collection(raw: bytes) -> Collection:
    """Parse store bytes into a collection.

    Raises:
        DecodeError: If the bytes are not UTF-8 JSON holding an array of objects
    """
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"Corrupted store content: {e}") from e

    if not isinstance(data, list):
        raise DecodeError(f"Store must hold a JSON array, got {type(data).__name__}")
    for index, record in enumerate(data):
        if not isinstance(record, dict):
            raise DecodeError(f"Record {index} is {type(record).__name__}, expected an object")
    return data


def encode_collection(collection: Collection) -> bytes:
    """Serialize a collection the way it is stored on disk (2-space indented JSON).

    Raises:
        ValueError: If the collection is not JSON-serializable
    """
    try:
        return json.dumps(collection, indent=2, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise ValueError(f"Cannot serialize collection: {e}") from e
