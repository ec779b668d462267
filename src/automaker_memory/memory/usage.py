"""Usage feedback for memory files.

Counters in each file's frontmatter record how often it was loaded into a
prompt, referenced by the agent's output, and part of a successful feature.
They feed ``usage_score`` on the next selection. All updates here are best
effort: failures are logged and never raised.
"""

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from ..fs import FsModule, get_default_fs
from ..logging import JSONLLogger
from .codec import parse_frontmatter, render_memory_file
from .errors import emit_non_critical, run_non_critical
from .locks import LockManager, get_lock_manager
from .models import USAGE_STAT_FIELDS
from .store import get_memory_dir
from .terms import count_matches, extract_terms

logger = logging.getLogger(__name__)

# Shared terms needed to count a memory file as referenced by the output
REFERENCE_THRESHOLD = 3


class LoadedMemory(Protocol):
    """Anything with a memory file name and the body that was injected."""

    name: str
    content: str


async def _increment(path: Path, stat: str, fs: FsModule) -> None:
    content = await fs.read_file(path, "utf-8")
    metadata, body = parse_frontmatter(content)

    attr = USAGE_STAT_FIELDS[stat]
    stats = metadata.usage_stats
    setattr(stats, attr, getattr(stats, attr) + 1)

    await fs.write_file(path, render_memory_file(metadata, body))


async def increment_usage_stat(
    file_path: str | Path,
    stat: str,
    fs: FsModule | None = None,
    locks: LockManager | None = None,
    event_logger: JSONLLogger | None = None,
) -> bool:
    """Increment one usage counter of a memory file by exactly one.

    The read-parse-write sequence runs under the file's lock. A missing or
    unreadable file is a no-op.

    Args:
        file_path: Path of the memory file.
        stat: ``loaded``, ``referenced`` or ``successfulFeatures``.
        fs: Filesystem module. Defaults to the local filesystem.
        locks: Lock manager. Defaults to the process-wide one.
        event_logger: Optional JSONL logger for the update event.

    Returns:
        True if the counter was written.

    Raises:
        ValueError: If ``stat`` is not a usage counter name.
    """
    if stat not in USAGE_STAT_FIELDS:
        raise ValueError(f"Unknown usage stat: {stat}")

    fs = fs or get_default_fs()
    locks = locks or get_lock_manager()
    path = Path(file_path)

    result = await run_non_critical(
        lambda: locks.run_exclusive(path, lambda: _increment(path, stat, fs)),
        description=f"increment {stat} for {path.name}",
    )

    if event_logger is not None:
        emit_non_critical(
            lambda: event_logger.log_usage_update(
                path, stat, result.success, error=result.error
            ),
            description=f"log {stat} update for {path.name}",
        )
    return result.success


def was_referenced(memory_content: str, agent_output: str) -> bool:
    """Whether agent output shares enough terms with a memory file's body."""
    file_terms = extract_terms(memory_content)
    output_terms = extract_terms(agent_output)
    return count_matches(file_terms, output_terms) >= REFERENCE_THRESHOLD


async def record_memory_usage(
    project_path: str | Path,
    loaded_files: Iterable[LoadedMemory],
    agent_output: str,
    success: bool,
    fs: FsModule | None = None,
    locks: LockManager | None = None,
    event_logger: JSONLLogger | None = None,
) -> list[str]:
    """Update counters after an agent run.

    For every memory file that was loaded, ``referenced`` is incremented if
    the output shares at least three terms with the file's body; on a
    successful run ``successfulFeatures`` is incremented as well.

    Args:
        project_path: Project root.
        loaded_files: Memory files that were injected (name + body).
        agent_output: Raw text produced by the agent.
        success: Whether the feature completed successfully.

    Returns:
        Names of the files counted as referenced.
    """
    memory_dir = get_memory_dir(project_path)
    referenced: list[str] = []

    for file in loaded_files:
        if not was_referenced(file.content, agent_output):
            continue

        referenced.append(file.name)
        file_path = memory_dir / file.name
        await increment_usage_stat(file_path, "referenced", fs, locks, event_logger)
        if success:
            await increment_usage_stat(
                file_path, "successfulFeatures", fs, locks, event_logger
            )

    if referenced:
        logger.info("Memory files referenced by agent output: %s", ", ".join(referenced))
    return referenced
