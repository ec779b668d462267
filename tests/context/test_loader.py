"""Tests for context and memory loading."""

import asyncio
import json
import shutil
from pathlib import Path
from unittest.mock import ANY, Mock

import pytest

from automaker_memory.config import MemoryConfig
from automaker_memory.context import (
    ContextLoader,
    ScoredMemory,
    TaskContext,
    get_context_dir,
    get_context_files_summary,
    load_context_files,
    select_memory,
)
from automaker_memory.fs import LocalFs
from automaker_memory.logging import JSONLLogger
from automaker_memory.memory import (
    FileLockManager,
    MemoryMetadata,
    get_memory_dir,
    parse_frontmatter,
)
from automaker_memory.memory.codec import render_memory_file


def write_memory(project: Path, name: str, body: str = "\n# Notes\nSome notes\n", **metadata) -> Path:
    """Write a memory file with frontmatter into a project."""
    memory_dir = get_memory_dir(project)
    memory_dir.mkdir(parents=True, exist_ok=True)
    path = memory_dir / name
    path.write_text(render_memory_file(MemoryMetadata(**metadata), body), encoding="utf-8")
    return path


def write_context(project: Path, name: str, content: str) -> Path:
    """Write a context file into a project."""
    context_dir = get_context_dir(project)
    context_dir.mkdir(parents=True, exist_ok=True)
    path = context_dir / name
    path.write_text(content, encoding="utf-8")
    return path


def loaded_count(path: Path) -> int:
    return parse_frontmatter(path.read_text(encoding="utf-8")).metadata.usage_stats.loaded


def scored(name: str, importance: float, score: float) -> ScoredMemory:
    return ScoredMemory(
        name=name,
        path=Path(name),
        body="x",
        metadata=MemoryMetadata(importance=importance),
        score=score,
    )


class ReadOnlyFs(LocalFs):
    """LocalFs that refuses every write."""

    async def write_file(self, path, content):
        raise PermissionError(f"read-only: {path}")


@pytest.fixture
def locks() -> FileLockManager:
    return FileLockManager()


class TestSelectMemory:
    """Tests for the selection policy."""

    def test_gotchas_always_first(self):
        """Gotchas takes the only slot over a higher-importance file."""
        candidates = [scored("other.md", 0.95, 0.95), scored("gotchas.md", 0.1, 0.1)]
        assert select_memory(candidates, 1, False) == {"gotchas.md"}

    def test_high_importance_without_terms(self):
        """Without task terms only high-importance files are picked."""
        candidates = [
            scored("core.md", 0.9, 0.9),
            scored("misc.md", 0.5, 0.5),
        ]
        assert select_memory(candidates, 5, False) == {"core.md"}

    def test_relevant_files_fill_remaining(self):
        """With task terms, files scoring above zero fill the remaining slots."""
        candidates = [
            scored("auth.md", 0.5, 4.0),
            scored("db.md", 0.5, 1.0),
            scored("css.md", 0.5, 0.0),
        ]
        assert select_memory(candidates, 5, True) == {"auth.md", "db.md"}

    def test_cap_respected(self):
        """Relevant files stop at the cap, highest score first."""
        candidates = [scored(f"f{i}.md", 0.5, 10.0 - i) for i in range(5)]
        assert select_memory(candidates, 2, True) == {"f0.md", "f1.md"}

    def test_zero_cap_selects_nothing(self):
        """A cap of zero selects nothing, not even gotchas."""
        assert select_memory([scored("gotchas.md", 0.9, 0.9)], 0, True) == set()


class TestContextLoader:
    """Tests for ContextLoader.load."""

    @pytest.mark.asyncio
    async def test_empty_project(self, tmp_path: Path, locks: FileLockManager):
        """Missing directories give an empty result."""
        result = await load_context_files(tmp_path, initialize_memory=False, locks=locks)

        assert result.files == []
        assert result.memory_files == []
        assert result.formatted_prompt == ""
        assert not get_memory_dir(tmp_path).exists()

    @pytest.mark.asyncio
    async def test_initializes_memory_folder(self, tmp_path: Path, locks: FileLockManager):
        """First load creates the folder and selects the starter gotchas file."""
        result = await load_context_files(tmp_path, locks=locks)

        memory_dir = get_memory_dir(tmp_path)
        assert (memory_dir / "_index.md").exists()
        assert [f.name for f in result.memory_files] == ["gotchas.md"]
        assert loaded_count(memory_dir / "gotchas.md") == 1

    @pytest.mark.asyncio
    async def test_only_gotchas_with_cap_of_one(self, tmp_path: Path, locks: FileLockManager):
        """With a cap of one only gotchas is selected."""
        write_memory(tmp_path, "gotchas.md", importance=0.9)
        write_memory(tmp_path, "core.md", importance=0.95, tags=["auth"])

        result = await load_context_files(
            tmp_path,
            task_context=TaskContext("Auth work"),
            max_memory_files=1,
            initialize_memory=False,
            locks=locks,
        )

        assert [f.name for f in result.memory_files] == ["gotchas.md"]

    @pytest.mark.asyncio
    async def test_high_importance_capped(self, tmp_path: Path, locks: FileLockManager):
        """Ten always-include files with a cap of three select three."""
        for i in range(10):
            write_memory(tmp_path, f"file-{i:02d}.md", importance=0.95)

        result = await load_context_files(
            tmp_path, max_memory_files=3, initialize_memory=False, locks=locks
        )

        assert [f.name for f in result.memory_files] == [
            "file-00.md", "file-01.md", "file-02.md",
        ]

    @pytest.mark.asyncio
    async def test_empty_body_never_selected(self, tmp_path: Path, locks: FileLockManager):
        """A file with a blank body never takes a slot."""
        write_memory(tmp_path, "gotchas.md", body="  \n", importance=0.9)

        result = await load_context_files(tmp_path, initialize_memory=False, locks=locks)

        assert result.memory_files == []

    @pytest.mark.asyncio
    async def test_zero_cap_still_loads_context(self, tmp_path: Path, locks: FileLockManager):
        """A cap of zero skips memory but still loads every context file."""
        write_context(tmp_path, "rules.md", "Use pnpm")
        gotchas = write_memory(tmp_path, "gotchas.md", importance=0.9)

        result = await load_context_files(
            tmp_path, max_memory_files=0, initialize_memory=False, locks=locks
        )

        assert [f.name for f in result.files] == ["rules.md"]
        assert result.memory_files == []
        assert loaded_count(gotchas) == 0

    @pytest.mark.asyncio
    async def test_include_memory_false(self, tmp_path: Path, locks: FileLockManager):
        """Memory is neither loaded nor initialized."""
        write_context(tmp_path, "rules.md", "Use pnpm")

        result = await load_context_files(tmp_path, include_memory=False, locks=locks)

        assert result.memory_files == []
        assert "# Project Memory" not in result.formatted_prompt
        assert not get_memory_dir(tmp_path).exists()

    @pytest.mark.asyncio
    async def test_end_to_end(self, tmp_path: Path, locks: FileLockManager):
        """Context rules and the relevant memory file form the prompt."""
        write_context(tmp_path, "rules.md", "Use pnpm")
        (get_context_dir(tmp_path) / "context-metadata.json").write_text(
            json.dumps({"files": {"rules.md": {"description": "Package manager rules"}}})
        )
        auth = write_memory(
            tmp_path,
            "auth-decisions.md",
            body="\n# Auth\nUse refresh tokens\n",
            tags=["auth", "jwt"],
            importance=0.5,
        )
        styling = write_memory(tmp_path, "styling.md", tags=["css"], importance=0.5)

        result = await load_context_files(
            tmp_path,
            task_context=TaskContext("Add JWT refresh to auth API"),
            initialize_memory=False,
            locks=locks,
        )

        assert [f.name for f in result.files] == ["rules.md"]
        assert result.files[0].description == "Package manager rules"
        assert [f.name for f in result.memory_files] == ["auth-decisions.md"]
        assert result.memory_files[0].category == "auth-decisions"
        assert result.memory_files[0].score == pytest.approx(5.0)

        prompt = result.formatted_prompt
        assert prompt.startswith("# Project Context Files")
        assert "## rules.md" in prompt
        assert "**Purpose:** Package manager rules" in prompt
        assert "Use pnpm" in prompt
        assert "## AUTH-DECISIONS" in prompt
        assert "Use refresh tokens" in prompt
        assert prompt.index("Use pnpm") < prompt.index("# Project Memory")

        assert loaded_count(auth) == 1
        assert loaded_count(styling) == 0

    @pytest.mark.asyncio
    async def test_jwt_refresh_endpoint(self, tmp_path: Path, locks: FileLockManager):
        """A tag match on the task title selects the memory file."""
        write_context(tmp_path, "rules.md", "Use pnpm, never npm")
        write_memory(
            tmp_path,
            "auth-decisions.md",
            body="Use RS256 for signing",
            tags=["auth", "jwt"],
            summary="JWT auth patterns",
        )

        result = await load_context_files(
            tmp_path,
            task_context=TaskContext("Add JWT refresh endpoint"),
            initialize_memory=False,
            locks=locks,
        )

        assert [f.name for f in result.files] == ["rules.md"]
        assert [f.name for f in result.memory_files] == ["auth-decisions.md"]
        assert result.memory_files[0].score > 0
        assert "Use pnpm, never npm" in result.formatted_prompt
        assert "Use RS256 for signing" in result.formatted_prompt

    @pytest.mark.asyncio
    async def test_gotchas_beats_zero_scores(self, tmp_path: Path, locks: FileLockManager):
        """Gotchas is selected even when nothing else matches the task."""
        write_memory(tmp_path, "gotchas.md", importance=0.9)
        for name in ("styling.md", "deploy.md", "metrics.md", "i18n.md"):
            write_memory(tmp_path, name, tags=["unrelated"], importance=0.5)

        result = await load_context_files(
            tmp_path,
            task_context=TaskContext("Database migration"),
            max_memory_files=1,
            initialize_memory=False,
            locks=locks,
        )

        assert [f.name for f in result.memory_files] == ["gotchas.md"]

    @pytest.mark.asyncio
    async def test_unrelated_low_importance_skipped(self, tmp_path: Path, locks: FileLockManager):
        """Files with no term overlap and normal importance are left out."""
        write_memory(tmp_path, "styling.md", tags=["css"], importance=0.5)

        result = await load_context_files(
            tmp_path,
            task_context=TaskContext("Database migration"),
            initialize_memory=False,
            locks=locks,
        )

        assert result.memory_files == []

    @pytest.mark.asyncio
    async def test_concurrent_loads_count_every_load(self, tmp_path: Path, locks: FileLockManager):
        """Concurrent loads each increment the loaded counter."""
        gotchas = write_memory(tmp_path, "gotchas.md", importance=0.9)

        await asyncio.gather(*(
            load_context_files(tmp_path, initialize_memory=False, locks=locks)
            for _ in range(5)
        ))

        assert loaded_count(gotchas) == 5

    @pytest.mark.asyncio
    async def test_counter_failure_does_not_fail_load(self, tmp_path: Path, locks: FileLockManager):
        """Usage tracking is best effort."""
        gotchas = write_memory(tmp_path, "gotchas.md", importance=0.9)

        result = await load_context_files(
            tmp_path, initialize_memory=False, fs=ReadOnlyFs(), locks=locks
        )

        assert [f.name for f in result.memory_files] == ["gotchas.md"]
        assert loaded_count(gotchas) == 0

    @pytest.mark.asyncio
    async def test_broken_event_log_does_not_fail_load(
        self, tmp_path: Path, locks: FileLockManager
    ):
        """An event log that cannot be written is skipped; selection and counters still work."""
        log_dir = tmp_path / "logs"
        event_logger = JSONLLogger(log_dir=log_dir)
        shutil.rmtree(log_dir)
        project = tmp_path / "project"
        gotchas = write_memory(project, "gotchas.md", importance=0.9)

        result = await load_context_files(
            project, initialize_memory=False, locks=locks, event_logger=event_logger
        )

        assert [f.name for f in result.memory_files] == ["gotchas.md"]
        assert loaded_count(gotchas) == 1
        assert not log_dir.exists()

    @pytest.mark.asyncio
    async def test_config_defaults_used(self, tmp_path: Path, locks: FileLockManager):
        """The loader falls back to its config for unset options."""
        for i in range(3):
            write_memory(tmp_path, f"file-{i}.md", importance=0.95)

        loader = ContextLoader(
            locks=locks,
            config=MemoryConfig(max_memory_files=1, initialize_memory=False),
        )
        result = await loader.load(tmp_path)

        assert len(result.memory_files) == 1

    @pytest.mark.asyncio
    async def test_logs_selection(self, tmp_path: Path, locks: FileLockManager):
        """The event logger receives the selected file names."""
        write_context(tmp_path, "rules.md", "Use pnpm")
        write_memory(tmp_path, "gotchas.md", importance=0.9)
        event_logger = Mock()

        await load_context_files(
            tmp_path,
            task_context=TaskContext("Anything"),
            initialize_memory=False,
            locks=locks,
            event_logger=event_logger,
        )

        event_logger.log_selection.assert_called_once_with(
            tmp_path,
            ["rules.md"],
            ["gotchas.md"],
            task_title="Anything",
            duration_ms=ANY,
        )


class TestContextFilesSummary:
    """Tests for get_context_files_summary."""

    @pytest.mark.asyncio
    async def test_lists_context_files(self, tmp_path: Path):
        """Only .md/.txt files are listed, sorted, with descriptions."""
        write_context(tmp_path, "rules.md", "a")
        write_context(tmp_path, "notes.txt", "b")
        write_context(tmp_path, "logo.png", "c")
        write_context(
            tmp_path,
            "context-metadata.json",
            json.dumps({"files": {"rules.md": {"description": "Rules"}}}),
        )

        summary = await get_context_files_summary(tmp_path)

        assert [(s.name, s.description) for s in summary] == [
            ("notes.txt", None),
            ("rules.md", "Rules"),
        ]
        assert summary[1].path == str(get_context_dir(tmp_path) / "rules.md")

    @pytest.mark.asyncio
    async def test_invalid_metadata_ignored(self, tmp_path: Path):
        """Broken context metadata only drops the descriptions."""
        write_context(tmp_path, "rules.md", "a")
        write_context(tmp_path, "context-metadata.json", "{not json")

        summary = await get_context_files_summary(tmp_path)

        assert [(s.name, s.description) for s in summary] == [("rules.md", None)]

    @pytest.mark.asyncio
    async def test_missing_folder(self, tmp_path: Path):
        """A project without a context folder has no context files."""
        assert await get_context_files_summary(tmp_path) == []
