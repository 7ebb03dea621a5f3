"""
Utility functions for itemstore.
"""

import os
import time
from pathlib import Path


def get_project_root() -> str:
    """
    Get the project root directory (parent of src/itemstore).

    Returns:
        Absolute path to the project root directory
    """
    return os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def default_data_path() -> Path:
    """Default location of the items file: ``<project root>/data/items.json``."""
    return Path(get_project_root()) / "data" / "items.json"


def now_millis() -> int:
    """Current Unix time in whole milliseconds."""
    return time.time_ns() // 1_000_000
