"""Per-file locks for read-modify-write of memory files.

Concurrent agent tasks in one process can update the same memory file
(usage counters, appended learnings). Operations on the same path run one
at a time in request order; operations on different paths never wait on
each other. This is an in-process lock only.
"""

import asyncio
import os
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from pathlib import Path
from typing import Protocol, TypeVar

T = TypeVar("T")


class LockManager(Protocol):
    """Serializes operations keyed by file path."""

    def hold(self, path: str | Path) -> AbstractAsyncContextManager[None]:
        """Async context manager that holds the lock for ``path``."""
        ...

    async def run_exclusive(
        self, path: str | Path, operation: Callable[[], Awaitable[T]]
    ) -> T:
        """Await ``operation()`` while holding the lock for ``path``."""
        ...


class FileLockManager:
    """In-process LockManager built on one asyncio.Lock per path.

    asyncio.Lock wakes waiters in FIFO order. Each entry counts its holder
    and waiters and is removed when the last one leaves, whether the
    operation returned, raised, or was cancelled.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @staticmethod
    def _key(path: str | Path) -> str:
        return os.path.abspath(os.fspath(path))

    def pending_paths(self) -> set[str]:
        """Paths that currently have a holder or waiters."""
        return set(self._locks)

    @asynccontextmanager
    async def hold(self, path: str | Path) -> AsyncIterator[None]:
        key = self._key(path)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1

        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    async def run_exclusive(
        self, path: str | Path, operation: Callable[[], Awaitable[T]]
    ) -> T:
        async with self.hold(path):
            return await operation()


# Global instance
_lock_manager: LockManager | None = None


def get_lock_manager() -> LockManager:
    """Get the process-wide lock manager."""
    global _lock_manager
    if _lock_manager is None:
        _lock_manager = FileLockManager()
    return _lock_manager


def set_lock_manager(manager: LockManager) -> None:
    """Replace the process-wide lock manager (e.g. with a cross-process one)."""
    global _lock_manager
    _lock_manager = manager


def reset_lock_manager() -> None:
    """Reset the process-wide lock manager (for testing)."""
    global _lock_manager
    _lock_manager = None
