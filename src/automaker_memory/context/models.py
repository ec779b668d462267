"""Data models for context loading."""

from dataclasses import dataclass, field

from ..memory.models import MemoryMetadata


@dataclass(frozen=True)
class TaskContext:
    """The task an agent is about to work on.

    Attributes:
        title: Title or name of the feature.
        description: What the task involves.
    """

    title: str
    description: str | None = None

    def text(self) -> str:
        """Title and description as one string for term extraction."""
        return f"{self.title} {self.description or ''}"


@dataclass
class ContextFileSummary:
    """A context file without its content."""

    name: str
    path: str
    description: str | None = None


@dataclass
class ContextFile:
    """A project rule/convention file, always injected in full."""

    name: str
    path: str
    content: str
    description: str | None = None


@dataclass
class MemoryFileInfo:
    """A memory file selected for injection.

    Attributes:
        name: File name, e.g. ``auth-decisions.md``.
        path: Absolute path of the file.
        content: Body without frontmatter.
        category: File name without ``.md``; used as the prompt heading.
        metadata: Parsed frontmatter at selection time.
        score: Relevance score at selection time.
    """

    name: str
    path: str
    content: str
    category: str
    metadata: MemoryMetadata = field(default_factory=MemoryMetadata)
    score: float = 0.0


@dataclass
class ContextFilesResult:
    """Everything injected into an agent prompt."""

    files: list[ContextFile] = field(default_factory=list)
    memory_files: list[MemoryFileInfo] = field(default_factory=list)
    formatted_prompt: str = ""
