"""Context and memory selection for coding-agent prompts.

Typical flow around one agent task:

    result = await load_context_files(project, task_context=TaskContext(title))
    # ... run the agent with result.formatted_prompt as system instructions ...
    await record_memory_usage(project, result.memory_files, output, success)
    await append_learning(project, LearningEntry(...))
"""

from .config import MemoryConfig, load_config
from .context import (
    ContextFile,
    ContextFileSummary,
    ContextFilesResult,
    ContextLoader,
    MemoryFileInfo,
    TaskContext,
    get_context_files_summary,
    load_context_files,
)
from .fs import FsModule, LocalFs
from .memory import (
    LearningEntry,
    LearningType,
    MemoryMetadata,
    UsageStats,
    append_learning,
    extract_terms,
    increment_usage_stat,
    initialize_memory_folder,
    parse_frontmatter,
    record_memory_usage,
    serialize_frontmatter,
    usage_score,
)

__all__ = [
    "ContextFile",
    "ContextFileSummary",
    "ContextFilesResult",
    "ContextLoader",
    "FsModule",
    "LearningEntry",
    "LearningType",
    "LocalFs",
    "MemoryConfig",
    "MemoryFileInfo",
    "MemoryMetadata",
    "TaskContext",
    "UsageStats",
    "append_learning",
    "extract_terms",
    "get_context_files_summary",
    "increment_usage_stat",
    "initialize_memory_folder",
    "load_config",
    "load_context_files",
    "parse_frontmatter",
    "record_memory_usage",
    "serialize_frontmatter",
    "usage_score",
]
