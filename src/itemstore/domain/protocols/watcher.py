"""Change watcher protocol."""

from typing import Awaitable, Callable, Protocol

__all__ = ["ChangeWatcher", "ChangeCallback"]

# Receives a short description of what changed (event type, path, ...)
ChangeCallback = Callable[[str], Awaitable[None]]


class ChangeWatcher(Protocol):
    """Protocol for out-of-band change notification on a persistent store.

    Notifications are asynchronous and best effort: a single logical change
    may produce several notifications (or none before the next read), so
    consumers must tolerate duplicates.

    The callback is always awaited on the event loop that called ``start``,
    never on a watcher-owned thread.
    """

    async def start(self, callback: ChangeCallback) -> None:
        """Begin watching and deliver notifications to ``callback``.

        Raises:
            Exception: Any setup failure (e.g. watched directory missing)
        """
        ...

    async def stop(self) -> None:
        """Stop watching. Idempotent."""
        ...

    @property
    def is_running(self) -> bool:
        """Whether notifications are currently being delivered."""
        ...
