"""Recording learnings into category memory files."""

import logging
import re
from datetime import date, datetime, timezone
from pathlib import Path

from ..fs import FsModule, get_default_fs
from ..logging import JSONLLogger
from .codec import serialize_frontmatter
from .errors import emit_non_critical
from .locks import LockManager, get_lock_manager
from .models import LearningEntry, LearningType, MemoryMetadata
from .store import get_memory_dir

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "general"
NEW_CATEGORY_IMPORTANCE = 0.7

_WHITESPACE_RE = re.compile(r"\s+")
_INVALID_CATEGORY_CHARS_RE = re.compile(r"[^a-z0-9-]")

# (LearningEntry attribute, bullet label) per learning type
_DECISION_FIELDS = [
    ("context", "Context"),
    ("why", "Why"),
    ("rejected", "Rejected"),
    ("tradeoffs", "Trade-offs"),
    ("breaking", "Breaking if changed"),
]
_GOTCHA_FIELDS = [
    ("context", "Situation"),
    ("why", "Root cause"),
    ("tradeoffs", "How to avoid"),
]
_PATTERN_FIELDS = [
    ("context", "Problem solved"),
    ("why", "Why this works"),
    ("tradeoffs", "Trade-offs"),
]


def sanitize_category(category: str) -> str:
    """Turn a category name into a file stem.

    Lowercase, whitespace runs become one hyphen, anything outside
    ``[a-z0-9-]`` is dropped. Falls back to ``general`` when nothing is left.
    """
    slug = _WHITESPACE_RE.sub("-", category.lower())
    slug = _INVALID_CATEGORY_CHARS_RE.sub("", slug)
    return slug or DEFAULT_CATEGORY


def _today() -> date:
    return datetime.now(timezone.utc).date()


def format_learning(learning: LearningEntry, today: date | None = None) -> str:
    """Format a learning as a markdown entry.

    The entry starts with a newline so it can be appended directly after
    existing content.
    """
    stamp = (today or _today()).isoformat()

    if learning.type is LearningType.DECISION:
        heading = f"### {learning.content} ({stamp})"
        fields = _DECISION_FIELDS
    elif learning.type is LearningType.GOTCHA:
        heading = f"#### [Gotcha] {learning.content} ({stamp})"
        fields = _GOTCHA_FIELDS
    else:
        prefix = "[Pattern]" if learning.type is LearningType.PATTERN else "[Learned]"
        heading = f"#### {prefix} {learning.content} ({stamp})"
        fields = _PATTERN_FIELDS

    lines = ["\n" + heading]
    for attr, label in fields:
        value = getattr(learning, attr)
        if value:
            lines.append(f"- **{label}:** {value}")
    return "\n".join(lines)


def new_category_metadata(learning: LearningEntry) -> MemoryMetadata:
    """Metadata for a category file created by its first learning."""
    slug = sanitize_category(learning.category)
    return MemoryMetadata(
        tags=[slug],
        summary=f"{learning.category} implementation decisions and patterns",
        relevant_to=[slug],
        importance=NEW_CATEGORY_IMPORTANCE,
    )


async def append_learning(
    project_path: str | Path,
    learning: LearningEntry,
    fs: FsModule | None = None,
    locks: LockManager | None = None,
    event_logger: JSONLLogger | None = None,
    today: date | None = None,
) -> Path:
    """Append a learning to its category file, creating the file if needed.

    Existing content is never rewritten: new entries go to the end. The
    exists-check and the write run under the file's lock so two concurrent
    first learnings for a category cannot both create the file.

    Args:
        project_path: Project root.
        learning: The learning to record.
        fs: Filesystem module. Defaults to the local filesystem.
        locks: Lock manager. Defaults to the process-wide one.
        event_logger: Optional JSONL logger for the event.
        today: Date stamped on the entry. Defaults to the current UTC date.

    Returns:
        Path of the memory file written.
    """
    fs = fs or get_default_fs()
    locks = locks or get_lock_manager()
    memory_dir = get_memory_dir(project_path)
    file_path = memory_dir / f"{sanitize_category(learning.category)}.md"
    entry = format_learning(learning, today)

    logger.info(
        "Recording %s learning in category %r", learning.type.value, learning.category
    )

    async with locks.hold(file_path):
        try:
            await fs.access(file_path)
            exists = True
        except OSError:
            exists = False

        if exists:
            await fs.append_file(file_path, "\n" + entry)
            logger.info("Appended learning to existing file: %s", file_path.name)
        else:
            await fs.mkdir(memory_dir, recursive=True)
            content = (
                serialize_frontmatter(new_category_metadata(learning))
                + f"\n# {learning.category}\n"
                + entry
            )
            await fs.write_file(file_path, content)
            logger.info("Created new memory file: %s", file_path.name)

    if event_logger is not None:
        emit_non_critical(
            lambda: event_logger.log_learning(
                file_path, learning.category, learning.type.value, created=not exists
            ),
            description=f"log learning for {file_path.name}",
        )
    return file_path
