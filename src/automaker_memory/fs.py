"""Filesystem access for context and memory files.

The loaders only need six async operations, described by ``FsModule``.
``LocalFs`` implements them over the OS filesystem; callers may inject any
other implementation (a sandboxed wrapper, an in-memory fake).
"""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Protocol


class FsModule(Protocol):
    """Async filesystem operations used by the memory and context loaders."""

    async def access(self, path: str | Path) -> None:
        """Raise FileNotFoundError if path does not exist."""
        ...

    async def readdir(self, path: str | Path) -> list[str]:
        """Return entry names (not paths) in a directory."""
        ...

    async def read_file(self, path: str | Path, encoding: str = "utf-8") -> str:
        """Read a whole text file."""
        ...

    async def write_file(self, path: str | Path, content: str) -> None:
        """Replace a file's contents."""
        ...

    async def mkdir(self, path: str | Path, recursive: bool = False) -> None:
        """Create a directory."""
        ...

    async def append_file(self, path: str | Path, content: str) -> None:
        """Append text to the end of a file."""
        ...


def _access(path: Path) -> None:
    if not path.exists():
        raise FileNotFoundError(f"No such file or directory: {path}")


def _write_atomic(path: Path, content: str) -> None:
    """Write via temp file + rename so readers never see a partial file."""
    fd, temp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.stem}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        os.replace(temp_path, path)
        temp_path = None
    finally:
        if temp_path and os.path.exists(temp_path):
            os.unlink(temp_path)


def _append(path: Path, content: str) -> None:
    with open(path, "a", encoding="utf-8") as f:
        f.write(content)


class LocalFs:
    """FsModule backed by the local filesystem.

    Blocking calls run in a worker thread so the event loop stays free while
    several agent tasks load context concurrently.
    """

    async def access(self, path: str | Path) -> None:
        await asyncio.to_thread(_access, Path(path))

    async def readdir(self, path: str | Path) -> list[str]:
        return await asyncio.to_thread(os.listdir, Path(path))

    async def read_file(self, path: str | Path, encoding: str = "utf-8") -> str:
        return await asyncio.to_thread(Path(path).read_text, encoding=encoding)

    async def write_file(self, path: str | Path, content: str) -> None:
        await asyncio.to_thread(_write_atomic, Path(path), content)

    async def mkdir(self, path: str | Path, recursive: bool = False) -> None:
        await asyncio.to_thread(
            Path(path).mkdir, parents=recursive, exist_ok=recursive
        )

    async def append_file(self, path: str | Path, content: str) -> None:
        await asyncio.to_thread(_append, Path(path), content)


# Global instance
_default_fs: LocalFs | None = None


def get_default_fs() -> LocalFs:
    """Get the shared LocalFs instance."""
    global _default_fs
    if _default_fs is None:
        _default_fs = LocalFs()
    return _default_fs
