"""File-based persistent store.

The whole collection lives in one JSON file. Blocking filesystem calls run in
the loop's default executor so a slow disk never stalls the event loop.
"""

import asyncio
import os
import stat
import tempfile
from functools import partial
from pathlib import Path
from typing import Any, Callable, TypeVar

from itemstore.domain.exceptions import StoreIOError
from itemstore.logger import get_logger

logger = get_logger("store.file")

T = TypeVar("T")


class FileStore:
    """Single-file persistent store.

    Features:
    - Replace-the-whole-file writes (unique temp file, then rename)
    - Nanosecond mtime as the modification signal
    - Parent directory created on first write

    Example:
        >>> store = FileStore("~/.itemstore/items.json")
        >>> await store.write_bytes(b"[]")
        >>> await store.read_bytes()
        b'[]'
    """

    def __init__(self, path: str | Path):
        """Initialize the file store.

        Args:
            path: Path of the JSON file. Supports ~ expansion and relative
                  paths. The file does not need to exist yet.
        """
        self.path = Path(path).expanduser().resolve()
        logger.info(f"FileStore initialized: path={self.path}")

    @property
    def location(self) -> str:
        return str(self.path)

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args))

    async def read_bytes(self) -> bytes:
        try:
            data = await self._run(self.path.read_bytes)
        except OSError as e:
            logger.error(f"Failed to read store file '{self.path}': {e}")
            raise StoreIOError(f"Cannot read store file: {e}") from e

        logger.debug(f"Read store file: path={self.path}, size={len(data)} bytes")
        return data

    async def write_bytes(self, data: bytes) -> None:
        try:
            await self._run(self._write_atomic, data)
        except OSError as e:
            logger.error(f"Failed to write store file '{self.path}': {e}")
            raise StoreIOError(f"Cannot write store file: {e}") from e

        logger.debug(f"Wrote store file: path={self.path}, size={len(data)} bytes")

    def _write_atomic(self, data: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # One temp file per writer so concurrent processes never share an inode
        fd, temp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            if self.path.is_file():
                os.chmod(temp_path, stat.S_IMODE(self.path.stat().st_mode))
            else:
                os.chmod(temp_path, 0o644)
            os.replace(temp_path, self.path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise

    async def modified_ns(self) -> int:
        try:
            info = await self._run(self.path.stat)
        except OSError as e:
            logger.debug(f"Cannot stat store file '{self.path}': {e}")
            raise StoreIOError(f"Cannot inspect store file: {e}") from e
        return info.st_mtime_ns

    async def exists(self) -> bool:
        return await self._run(self.path.is_file)

    def __repr__(self) -> str:
        return f"FileStore({str(self.path)!r})"
