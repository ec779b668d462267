"""On-disk layout of a project's memory folder.

Memory lives in ``<project>/.automaker/memory/`` as one markdown file per
category. ``_index.md`` documents the folder and is never injected;
``gotchas.md`` is always injected when it has content.
"""

import logging
from pathlib import Path

from ..fs import FsModule, get_default_fs
from .codec import parse_frontmatter, render_memory_file
from .locks import LockManager, get_lock_manager
from .models import MemoryFile, MemoryMetadata

logger = logging.getLogger(__name__)

AUTOMAKER_DIR = ".automaker"
MEMORY_DIR_NAME = "memory"
INDEX_FILE = "_index.md"
GOTCHAS_FILE = "gotchas.md"

INDEX_BODY = """
# Project Memory Index

This folder contains agent learnings organized by category.
Categories are created automatically as agents work on features.

## How This Works

1. After each successful feature, learnings are extracted and categorized
2. Relevant memory files are loaded into agent context for future features
3. Usage statistics help prioritize which memories are most helpful

## Categories

- **gotchas.md** - Mistakes and edge cases to avoid
- Other categories are created automatically based on feature work
"""

GOTCHAS_BODY = """
# Gotchas

Mistakes and edge cases to avoid. These are lessons learned from past issues.

---

"""


def get_memory_dir(project_path: str | Path) -> Path:
    """Memory directory for a project."""
    return Path(project_path) / AUTOMAKER_DIR / MEMORY_DIR_NAME


def index_metadata() -> MemoryMetadata:
    """Metadata for the starter `_index.md` file."""
    return MemoryMetadata(
        tags=["index", "overview"],
        summary="Overview of project memory categories",
        relevant_to=["project", "memory", "overview"],
        importance=0.5,
    )


def gotchas_metadata() -> MemoryMetadata:
    """Metadata for the starter `gotchas.md` file."""
    return MemoryMetadata(
        tags=["gotcha", "mistake", "edge-case", "bug", "warning"],
        summary="Mistakes and edge cases to avoid",
        relevant_to=["error", "bug", "fix", "issue", "problem"],
        importance=0.9,
    )


def is_memory_candidate(file_name: str) -> bool:
    """Whether a directory entry is a memory file eligible for selection."""
    lower = file_name.lower()
    return lower.endswith(".md") and lower != INDEX_FILE


async def initialize_memory_folder(
    project_path: str | Path,
    fs: FsModule | None = None,
    locks: LockManager | None = None,
) -> bool:
    """Create the memory folder with its starter files.

    Does nothing if the folder already exists. Runs under the folder's lock
    so concurrent first loads create the starter files once.

    Returns:
        True if the folder was created by this call.
    """
    fs = fs or get_default_fs()
    locks = locks or get_lock_manager()
    memory_dir = get_memory_dir(project_path)

    async with locks.hold(memory_dir):
        try:
            await fs.access(memory_dir)
            return False
        except OSError:
            pass

        await fs.mkdir(memory_dir, recursive=True)
        await fs.write_file(
            memory_dir / INDEX_FILE, render_memory_file(index_metadata(), INDEX_BODY)
        )
        await fs.write_file(
            memory_dir / GOTCHAS_FILE, render_memory_file(gotchas_metadata(), GOTCHAS_BODY)
        )

    logger.info("Initialized memory folder at %s", memory_dir)
    return True


async def list_memory_candidates(
    project_path: str | Path,
    fs: FsModule | None = None,
) -> list[str]:
    """Names of memory files eligible for selection, sorted.

    A missing memory folder yields an empty list.
    """
    fs = fs or get_default_fs()
    memory_dir = get_memory_dir(project_path)

    try:
        await fs.access(memory_dir)
        names = await fs.readdir(memory_dir)
    except OSError:
        return []

    return sorted(name for name in names if is_memory_candidate(name))


async def read_memory_file(
    project_path: str | Path,
    file_name: str,
    fs: FsModule | None = None,
) -> MemoryFile:
    """Read and parse one memory file.

    Raises:
        OSError: If the file cannot be read.
    """
    fs = fs or get_default_fs()
    content = await fs.read_file(get_memory_dir(project_path) / file_name, "utf-8")
    metadata, body = parse_frontmatter(content)
    return MemoryFile(name=file_name, body=body, metadata=metadata)


async def read_memory_files(
    project_path: str | Path,
    fs: FsModule | None = None,
) -> list[MemoryFile]:
    """Read every memory candidate, skipping files that cannot be read."""
    files: list[MemoryFile] = []
    for name in await list_memory_candidates(project_path, fs):
        try:
            files.append(await read_memory_file(project_path, name, fs))
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to read memory file %s: %s", name, e)
    return files
