"""Filesystem change watcher backed by watchdog.

watchdog delivers events on its observer thread. The handler only filters
them down to the watched file and posts a message through a
NotificationPump; the cache callback always runs on the event loop.
"""

import asyncio
import os
from pathlib import Path
from typing import Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from itemstore.domain.protocols.watcher import ChangeCallback
from itemstore.infrastructure.watch.pump import NotificationPump
from itemstore.logger import get_logger

logger = get_logger("watch.filesystem")


def _as_str(path) -> str:
    return os.fsdecode(path) if isinstance(path, bytes) else str(path)


class _SingleFileHandler(FileSystemEventHandler):
    """Forwards events that touch one file (including rename onto it)."""

    def __init__(self, target: Path, pump: NotificationPump):
        super().__init__()
        self._target = os.path.normcase(str(target))
        self._pump = pump

    def _matches(self, path) -> bool:
        if not path:
            return False
        return os.path.normcase(os.path.abspath(_as_str(path))) == self._target

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type in ("opened", "closed_no_write"):
            return
        if self._matches(event.src_path) or self._matches(getattr(event, "dest_path", "")):
            self._pump.post(f"{event.event_type}:{_as_str(event.src_path)}")


class WatchdogChangeWatcher:
    """Watches a single file through its parent directory.

    Watching the directory rather than the file keeps notifications flowing
    across atomic replace-by-rename writes, where the original inode goes
    away.

    Example:
        >>> watcher = WatchdogChangeWatcher("data/items.json")
        >>> await watcher.start(cache.invalidate)
        >>> ...
        >>> await watcher.stop()
    """

    def __init__(self, path: str | Path, join_timeout: float = 5.0):
        """
        Initialize the watcher.

        Args:
            path: File to watch. Its parent directory must exist at start time.
            join_timeout: Seconds to wait for the observer thread on stop
        """
        self.path = Path(path).expanduser().resolve()
        self._join_timeout = join_timeout
        self._pump = NotificationPump(name=f"watch:{self.path.name}")
        self._observer: Optional[Observer] = None

    async def start(self, callback: ChangeCallback) -> None:
        if self._observer is not None:
            logger.warning(f"Watcher for {self.path} already running")
            return

        directory = self.path.parent
        if not directory.is_dir():
            raise FileNotFoundError(f"Cannot watch {self.path}: directory {directory} does not exist")

        await self._pump.start(callback)
        observer = Observer()
        try:
            observer.schedule(_SingleFileHandler(self.path, self._pump), str(directory), recursive=False)
            observer.start()
        except Exception:
            await self._pump.stop()
            raise

        self._observer = observer
        logger.info(f"Watching {self.path} for external changes")

    async def stop(self) -> None:
        observer = self._observer
        if observer is None:
            return

        self._observer = None
        observer.stop()
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, observer.join, self._join_timeout)
        await self._pump.stop()
        logger.info(f"Stopped watching {self.path}")

    @property
    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    async def join(self) -> None:
        """Wait until every notification received so far has been handled."""
        await self._pump.join()
