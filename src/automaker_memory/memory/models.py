"""Data models for the memory system."""

from dataclasses import dataclass, field
from enum import Enum


@dataclass
class UsageStats:
    """Counters that record how useful a memory file has been.

    ``successful_features <= referenced`` is expected but not enforced; the
    usage tracker only bumps it right after bumping ``referenced``.
    """

    loaded: int = 0
    referenced: int = 0
    successful_features: int = 0


# Frontmatter key -> UsageStats attribute
USAGE_STAT_FIELDS = {
    "loaded": "loaded",
    "referenced": "referenced",
    "successfulFeatures": "successful_features",
}


@dataclass
class MemoryMetadata:
    """Metadata stored in the frontmatter block of a memory file.

    Attributes:
        tags: Keywords matched against task terms (weight 3).
        summary: One-line description, its terms are matched too (weight 1).
        relevant_to: Extra keywords distinct from tags (weight 2).
        importance: Base weight in [0, 1]; >= 0.9 means always include.
        related_files: Informational only.
        usage_stats: Load/reference/success counters.
    """

    tags: list[str] = field(default_factory=list)
    summary: str = ""
    relevant_to: list[str] = field(default_factory=list)
    importance: float = 0.5
    related_files: list[str] = field(default_factory=list)
    usage_stats: UsageStats = field(default_factory=UsageStats)


@dataclass
class MemoryFile:
    """A memory file split into metadata and markdown body."""

    name: str
    body: str
    metadata: MemoryMetadata = field(default_factory=MemoryMetadata)

    @property
    def category(self) -> str:
        """File name without the .md extension."""
        return self.name.removesuffix(".md")


class LearningType(Enum):
    """Kind of learning recorded after a task completes."""

    DECISION = "decision"
    LEARNING = "learning"
    PATTERN = "pattern"
    GOTCHA = "gotcha"


@dataclass
class LearningEntry:
    """A learning to append to a category file.

    Follows an ADR-like shape: optional fields render as bullet lines and are
    simply left out when missing.

    Attributes:
        category: Free-form category name; sanitized into the file name.
        type: decision, learning, pattern or gotcha.
        content: One-line statement used as the entry heading.
        context: Problem being solved or situation faced.
        why: Reasoning behind the approach.
        rejected: Alternative considered and why it was rejected.
        tradeoffs: What became easier or harder.
        breaking: What breaks if this is changed or removed.
    """

    category: str
    type: LearningType
    content: str
    context: str | None = None
    why: str | None = None
    rejected: str | None = None
    tradeoffs: str | None = None
    breaking: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.type, LearningType):
            try:
                self.type = LearningType(str(self.type).lower())
            except ValueError:
                valid = ", ".join(t.value for t in LearningType)
                raise ValueError(
                    f"Unknown learning type {self.type!r} (expected one of: {valid})"
                ) from None
