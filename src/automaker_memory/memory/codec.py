"""Frontmatter codec for memory files.

Memory files start with a small metadata header:

    ---
    tags: [auth, jwt]
    summary: JWT auth patterns
    relevantTo: [login, session]
    importance: 0.7
    relatedFiles: []
    usageStats:
      loaded: 3
      referenced: 1
      successfulFeatures: 1
    ---

This is a fixed line-oriented format, not YAML. Every field is parsed on its
own, so a malformed value falls back to that field's default instead of
discarding the whole header. Parsing never raises.
"""

import logging
import math
import re
from typing import Callable, NamedTuple

from .models import USAGE_STAT_FIELDS, MemoryMetadata

logger = logging.getLogger(__name__)

# Opening and closing delimiter lines; the newline after the closing one is optional
_FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL,
)
_FIELD_RE = re.compile(r"^(?P<indent>[ \t]*)(?P<key>[A-Za-z_]\w*)[ \t]*:(?P<value>.*)$")
_COUNT_RE = re.compile(r"^\d+$")

_SPECIAL_CHARS_RE = re.compile(r"""[:\[\]{}#&*!|>'"%@`\n\r]""")
# Escape sequences inside double quotes: \" and \\
_ESCAPE_RE = re.compile(r'\\(["\\])')


class ParsedMemory(NamedTuple):
    """Result of parsing a memory file."""

    metadata: MemoryMetadata
    body: str


def _unquote(text: str) -> str:
    """Strip one pair of surrounding quotes, undoing double-quote escaping."""
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        return _ESCAPE_RE.sub(r"\1", text[1:-1])
    if len(text) >= 2 and text[0] == "'" and text[-1] == "'":
        return text[1:-1]
    return text


def _split_items(inner: str) -> list[str]:
    """Split bracket-list contents on commas that are not inside quotes."""
    items: list[str] = []
    current: list[str] = []
    quote: str | None = None
    i = 0

    while i < len(inner):
        ch = inner[i]
        if quote is not None:
            if quote == '"' and ch == "\\" and i + 1 < len(inner):
                current.append(inner[i:i + 2])
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "\"'" and not "".join(current).strip():
            quote = ch
        elif ch == ",":
            items.append("".join(current))
            current = []
            i += 1
            continue
        current.append(ch)
        i += 1

    items.append("".join(current))
    return items


def _parse_list(value: str) -> list[str] | None:
    """Parse ``[a, "b", 'c']``. Returns None when the value is not a list."""
    end = value.rfind("]")
    if not value.startswith("[") or end < 0:
        return None

    items = (_unquote(raw.strip()) for raw in _split_items(value[1:end]))
    return [item for item in items if item]


def _parse_summary(value: str) -> str:
    return _unquote(value)


def _parse_importance(value: str) -> float | None:
    number = float(value)
    if math.isnan(number):
        return None
    return max(0.0, min(1.0, number))


def _parse_count(value: str) -> int | None:
    if not _COUNT_RE.match(value):
        return None
    return int(value)


# Frontmatter key -> (MemoryMetadata attribute, value parser)
_FIELD_PARSERS: dict[str, tuple[str, Callable[[str], object]]] = {
    "tags": ("tags", _parse_list),
    "summary": ("summary", _parse_summary),
    "relevantTo": ("relevant_to", _parse_list),
    "importance": ("importance", _parse_importance),
    "relatedFiles": ("related_files", _parse_list),
}


def _parse_header(header: str) -> MemoryMetadata:
    metadata = MemoryMetadata()
    in_usage_stats = False

    for line in header.splitlines():
        match = _FIELD_RE.match(line)
        if not match:
            continue

        key = match.group("key")
        value = match.group("value").strip()

        if match.group("indent"):
            # Nested lines only exist under usageStats
            if in_usage_stats and key in USAGE_STAT_FIELDS:
                count = _parse_count(value)
                if count is not None:
                    setattr(metadata.usage_stats, USAGE_STAT_FIELDS[key], count)
            continue

        in_usage_stats = key == "usageStats"
        if key not in _FIELD_PARSERS:
            continue

        attr, parser = _FIELD_PARSERS[key]
        try:
            parsed = parser(value)
        except (ValueError, TypeError, OverflowError):
            logger.debug("Ignoring malformed frontmatter field %s: %r", key, value)
            continue
        if parsed is not None:
            setattr(metadata, attr, parsed)

    return metadata


def parse_frontmatter(content: str) -> ParsedMemory:
    """Split a memory file into metadata and body.

    Content without a frontmatter block is returned whole as the body, with
    default metadata.

    Args:
        content: Raw file text.

    Returns:
        ParsedMemory(metadata, body).
    """
    match = _FRONTMATTER_RE.match(content)
    if not match:
        return ParsedMemory(MemoryMetadata(), content)

    return ParsedMemory(_parse_header(match.group(1)), content[match.end():])


def escape_yaml_string(value: str, in_list: bool = False) -> str:
    """Quote a value that contains characters significant to the header format.

    Values containing special characters, or leading/trailing whitespace,
    are wrapped in double quotes with inner backslashes and double quotes
    backslash-escaped.
    List items are also quoted when they contain a comma.
    """
    needs_quotes = (
        _SPECIAL_CHARS_RE.search(value) is not None
        or value.strip() != value
        or (in_list and "," in value)
    )
    if needs_quotes:
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return value


def _format_list(values: list[str]) -> str:
    return "[" + ", ".join(escape_yaml_string(v, in_list=True) for v in values) + "]"


def _format_number(value: float) -> str:
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


def serialize_frontmatter(metadata: MemoryMetadata) -> str:
    """Render metadata as a frontmatter block.

    The result ends with the closing ``---`` and no newline; callers add a
    newline before the body.
    """
    stats = metadata.usage_stats
    return "\n".join([
        "---",
        f"tags: {_format_list(metadata.tags)}",
        f"summary: {escape_yaml_string(metadata.summary)}",
        f"relevantTo: {_format_list(metadata.relevant_to)}",
        f"importance: {_format_number(metadata.importance)}",
        f"relatedFiles: {_format_list(metadata.related_files)}",
        "usageStats:",
        f"  loaded: {stats.loaded}",
        f"  referenced: {stats.referenced}",
        f"  successfulFeatures: {stats.successful_features}",
        "---",
    ])


def render_memory_file(metadata: MemoryMetadata, body: str) -> str:
    """Full file text for metadata plus body."""
    return serialize_frontmatter(metadata) + "\n" + body
