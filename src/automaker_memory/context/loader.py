"""Context and memory selection for agent prompts.

Loads the project's context files (``.automaker/context/*.md|*.txt``, always
injected in full) and picks the memory files most relevant to the current
task from ``.automaker/memory/``. The result is one formatted text block
that the agent executor prepends to the task prompt.

Memory selection, when ``max_memory_files > 0``:

1. ``gotchas.md`` is always selected if it has content.
2. Files with importance >= 0.9 are added in score order.
3. With task terms, remaining files scoring above zero fill the rest,
   highest score first.

Every selected file gets its ``loaded`` counter incremented (best effort).
"""

import asyncio
import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path

from ..config import MemoryConfig
from ..fs import FsModule, get_default_fs
from ..logging import JSONLLogger
from ..memory.errors import emit_non_critical, run_non_critical
from ..memory.locks import LockManager, get_lock_manager
from ..memory.models import MemoryMetadata
from ..memory.scoring import score_memory
from ..memory.store import (
    AUTOMAKER_DIR,
    GOTCHAS_FILE,
    get_memory_dir,
    initialize_memory_folder,
    list_memory_candidates,
    read_memory_file,
)
from ..memory.terms import extract_terms
from ..memory.usage import increment_usage_stat
from .models import (
    ContextFile,
    ContextFileSummary,
    ContextFilesResult,
    MemoryFileInfo,
    TaskContext,
)
from .prompt import build_context_prompt, build_memory_prompt, combine_prompt_sections

logger = logging.getLogger(__name__)

CONTEXT_DIR_NAME = "context"
CONTEXT_METADATA_FILE = "context-metadata.json"
CONTEXT_EXTENSIONS = (".md", ".txt")
ALWAYS_INCLUDE_IMPORTANCE = 0.9


def get_context_dir(project_path: str | Path) -> Path:
    """Absolute context directory for a project."""
    return Path(os.path.abspath(project_path)) / AUTOMAKER_DIR / CONTEXT_DIR_NAME


def is_context_file(file_name: str) -> bool:
    lower = file_name.lower()
    return lower.endswith(CONTEXT_EXTENSIONS) and file_name != CONTEXT_METADATA_FILE


@dataclass
class ScoredMemory:
    """A readable, non-empty memory candidate with its score."""

    name: str
    path: Path
    body: str
    metadata: MemoryMetadata
    score: float


def select_memory(
    scored: list[ScoredMemory],
    max_memory_files: int,
    has_task_terms: bool,
) -> set[str]:
    """Apply the selection policy to candidates sorted by descending score."""
    selected: set[str] = set()
    if max_memory_files <= 0:
        return selected

    if any(s.name == GOTCHAS_FILE for s in scored):
        selected.add(GOTCHAS_FILE)

    for s in scored:
        if len(selected) >= max_memory_files:
            break
        if s.metadata.importance >= ALWAYS_INCLUDE_IMPORTANCE:
            selected.add(s.name)

    if has_task_terms:
        for s in scored:
            if len(selected) >= max_memory_files:
                break
            if s.score > 0:
                selected.add(s.name)

    return selected


class ContextLoader:
    """Builds the context/memory prompt block for agent tasks.

    Example:
        loader = ContextLoader()
        result = await loader.load(
            "/path/to/project",
            task_context=TaskContext(title="Add JWT refresh endpoint"),
        )
        system_prompt = result.formatted_prompt
    """

    def __init__(
        self,
        fs: FsModule | None = None,
        locks: LockManager | None = None,
        config: MemoryConfig | None = None,
        event_logger: JSONLLogger | None = None,
    ) -> None:
        """Initialize the loader.

        Args:
            fs: Filesystem module. Defaults to the local filesystem.
            locks: Lock manager for counter updates. Defaults to the
                process-wide one.
            config: Default selection settings.
            event_logger: Optional JSONL logger for selection events.
        """
        self.fs = fs or get_default_fs()
        self.locks = locks or get_lock_manager()
        self.config = config or MemoryConfig()
        self.event_logger = event_logger

    async def _list_context_files(self, context_dir: Path) -> list[str]:
        try:
            await self.fs.access(context_dir)
            names = await self.fs.readdir(context_dir)
        except OSError:
            return []
        return sorted(name for name in names if is_context_file(name))

    async def _load_context_metadata(self, context_dir: Path) -> dict[str, str]:
        """Descriptions by file name from context-metadata.json."""
        try:
            raw = await self.fs.read_file(context_dir / CONTEXT_METADATA_FILE, "utf-8")
            data = json.loads(raw)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            return {}

        files = data.get("files") if isinstance(data, dict) else None
        if not isinstance(files, dict):
            return {}

        return {
            name: entry["description"]
            for name, entry in files.items()
            if isinstance(entry, dict) and isinstance(entry.get("description"), str)
        }

    async def load_context_files(self, project_path: str | Path) -> list[ContextFile]:
        """Read every context file in full. Unreadable files are skipped."""
        context_dir = get_context_dir(project_path)
        names = await self._list_context_files(context_dir)
        if not names:
            return []

        descriptions = await self._load_context_metadata(context_dir)
        files: list[ContextFile] = []
        for name in names:
            file_path = context_dir / name
            try:
                content = await self.fs.read_file(file_path, "utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Failed to read context file %s: %s", name, e)
                continue
            files.append(ContextFile(
                name=name,
                path=str(file_path),
                content=content,
                description=descriptions.get(name),
            ))
        return files

    async def summary(self, project_path: str | Path) -> list[ContextFileSummary]:
        """List context files with descriptions, without reading their content."""
        context_dir = get_context_dir(project_path)
        names = await self._list_context_files(context_dir)
        if not names:
            return []

        descriptions = await self._load_context_metadata(context_dir)
        return [
            ContextFileSummary(
                name=name,
                path=str(context_dir / name),
                description=descriptions.get(name),
            )
            for name in names
        ]

    async def _score_candidates(
        self,
        project_path: str | Path,
        task_terms: set[str],
    ) -> list[ScoredMemory]:
        memory_dir = Path(os.path.abspath(get_memory_dir(project_path)))
        scored: list[ScoredMemory] = []

        for name in await list_memory_candidates(project_path, self.fs):
            try:
                memory = await read_memory_file(project_path, name, self.fs)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Failed to read memory file %s: %s", name, e)
                continue

            if not memory.body.strip():
                continue

            score = score_memory(name, memory.metadata, task_terms)
            logger.debug("Memory file %s scored %.3f", name, score)
            scored.append(ScoredMemory(
                name=name,
                path=memory_dir / name,
                body=memory.body,
                metadata=memory.metadata,
                score=score,
            ))

        # sorted() is stable: equal scores keep file-name order
        return sorted(scored, key=lambda s: s.score, reverse=True)

    async def load_memory_files(
        self,
        project_path: str | Path,
        task_context: TaskContext | None = None,
        max_memory_files: int | None = None,
        initialize_memory: bool | None = None,
    ) -> list[MemoryFileInfo]:
        """Select the memory files to inject for a task."""
        if max_memory_files is None:
            max_memory_files = self.config.max_memory_files
        if initialize_memory is None:
            initialize_memory = self.config.initialize_memory

        if initialize_memory:
            await run_non_critical(
                lambda: initialize_memory_folder(project_path, self.fs, self.locks),
                description="initialize memory folder",
            )

        task_terms = extract_terms(task_context.text()) if task_context else set()
        scored = await self._score_candidates(project_path, task_terms)
        selected = select_memory(scored, max_memory_files, bool(task_terms))

        memory_files = [
            MemoryFileInfo(
                name=s.name,
                path=str(s.path),
                content=s.body,
                category=s.name.removesuffix(".md"),
                metadata=s.metadata,
                score=s.score,
            )
            for s in scored
            if s.name in selected
        ]

        # increment_usage_stat swallows I/O and event log failures
        await asyncio.gather(*(
            increment_usage_stat(
                f.path, "loaded", self.fs, self.locks, self.event_logger
            )
            for f in memory_files
        ))

        if memory_files:
            logger.info(
                "Selected memory files: %s", ", ".join(f.category for f in memory_files)
            )
        return memory_files

    async def load(
        self,
        project_path: str | Path,
        task_context: TaskContext | None = None,
        max_memory_files: int | None = None,
        include_memory: bool | None = None,
        initialize_memory: bool | None = None,
    ) -> ContextFilesResult:
        """Load context files and relevant memory, and build the prompt block.

        Args:
            project_path: Project root.
            task_context: Task used for memory scoring. Without it memory is
                ranked by importance and only gotchas and high-importance
                files are selected.
            max_memory_files: Cap on selected memory files (0 selects none).
            include_memory: Whether to load memory at all.
            initialize_memory: Whether to create a missing memory folder.

        Returns:
            ContextFilesResult; empty lists and an empty prompt when the
            project has no stored context or memory.
        """
        if include_memory is None:
            include_memory = self.config.include_memory

        started = time.perf_counter()
        files = await self.load_context_files(project_path)

        memory_files: list[MemoryFileInfo] = []
        if include_memory:
            memory_files = await self.load_memory_files(
                project_path,
                task_context=task_context,
                max_memory_files=max_memory_files,
                initialize_memory=initialize_memory,
            )

        formatted_prompt = combine_prompt_sections(
            build_context_prompt(files),
            build_memory_prompt(memory_files),
        )

        loaded_items = []
        if files:
            loaded_items.append(f"{len(files)} context file(s)")
        if memory_files:
            loaded_items.append(f"{len(memory_files)} memory file(s)")
        if loaded_items:
            logger.info("Loaded %s", " and ".join(loaded_items))

        if self.event_logger is not None:
            event_logger = self.event_logger
            duration_ms = (time.perf_counter() - started) * 1000
            emit_non_critical(
                lambda: event_logger.log_selection(
                    project_path,
                    [f.name for f in files],
                    [f.name for f in memory_files],
                    task_title=task_context.title if task_context else None,
                    duration_ms=duration_ms,
                ),
                description="log context selection",
            )

        return ContextFilesResult(
            files=files,
            memory_files=memory_files,
            formatted_prompt=formatted_prompt,
        )


async def load_context_files(
    project_path: str | Path,
    *,
    task_context: TaskContext | None = None,
    max_memory_files: int = 5,
    include_memory: bool = True,
    initialize_memory: bool = True,
    fs: FsModule | None = None,
    locks: LockManager | None = None,
    event_logger: JSONLLogger | None = None,
) -> ContextFilesResult:
    """Load context files and relevant memory for an agent task.

    Convenience wrapper around ``ContextLoader.load``.
    """
    loader = ContextLoader(fs=fs, locks=locks, event_logger=event_logger)
    return await loader.load(
        project_path,
        task_context=task_context,
        max_memory_files=max_memory_files,
        include_memory=include_memory,
        initialize_memory=initialize_memory,
    )


async def get_context_files_summary(
    project_path: str | Path,
    fs: FsModule | None = None,
) -> list[ContextFileSummary]:
    """Names, paths and descriptions of context files, without content."""
    return await ContextLoader(fs=fs).summary(project_path)
