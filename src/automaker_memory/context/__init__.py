"""Context loading: project rules plus selected memory for agent prompts."""

from .loader import (
    ContextLoader,
    ScoredMemory,
    get_context_dir,
    get_context_files_summary,
    load_context_files,
    select_memory,
)
from .models import (
    ContextFile,
    ContextFileSummary,
    ContextFilesResult,
    MemoryFileInfo,
    TaskContext,
)
from .prompt import build_context_prompt, build_memory_prompt

__all__ = [
    "ContextFile",
    "ContextFileSummary",
    "ContextFilesResult",
    "ContextLoader",
    "MemoryFileInfo",
    "ScoredMemory",
    "TaskContext",
    "build_context_prompt",
    "build_memory_prompt",
    "get_context_dir",
    "get_context_files_summary",
    "load_context_files",
    "select_memory",
]
