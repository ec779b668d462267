"""Project memory: learnings recorded by past agent runs.

Memory files are markdown documents with a small frontmatter header. This
package parses and writes them, scores them against a task, tracks how
useful they were, and records new learnings.
"""

from .codec import ParsedMemory, escape_yaml_string, parse_frontmatter, serialize_frontmatter
from .errors import NonCriticalResult, emit_non_critical, run_non_critical
from .learnings import append_learning, format_learning, sanitize_category
from .locks import (
    FileLockManager,
    LockManager,
    get_lock_manager,
    reset_lock_manager,
    set_lock_manager,
)
from .models import LearningEntry, LearningType, MemoryFile, MemoryMetadata, UsageStats
from .scoring import score_memory, usage_score
from .store import (
    GOTCHAS_FILE,
    INDEX_FILE,
    get_memory_dir,
    initialize_memory_folder,
    list_memory_candidates,
    read_memory_files,
)
from .terms import category_terms, count_matches, extract_terms
from .usage import increment_usage_stat, record_memory_usage, was_referenced

__all__ = [
    "FileLockManager",
    "GOTCHAS_FILE",
    "INDEX_FILE",
    "LearningEntry",
    "LearningType",
    "LockManager",
    "MemoryFile",
    "MemoryMetadata",
    "NonCriticalResult",
    "ParsedMemory",
    "UsageStats",
    "append_learning",
    "category_terms",
    "count_matches",
    "emit_non_critical",
    "escape_yaml_string",
    "extract_terms",
    "format_learning",
    "get_lock_manager",
    "get_memory_dir",
    "increment_usage_stat",
    "initialize_memory_folder",
    "list_memory_candidates",
    "parse_frontmatter",
    "read_memory_files",
    "record_memory_usage",
    "reset_lock_manager",
    "run_non_critical",
    "sanitize_category",
    "score_memory",
    "serialize_frontmatter",
    "set_lock_manager",
    "usage_score",
    "was_referenced",
]
