"""Term extraction for relevance matching."""

import re
from collections.abc import Iterable

STOP_WORDS = frozenset({
    "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "is", "it", "this", "that", "be", "as", "are", "was", "were",
    "been", "being", "have", "has", "had", "do", "does", "did", "will", "would",
    "could", "should", "may", "might", "must", "shall", "can", "need", "dare",
    "ought", "used",
    # Generic task verbs, present in almost every feature title
    "add", "create", "implement", "build", "make", "update", "fix", "change",
    "modify",
})

MIN_TERM_LENGTH = 3

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_CATEGORY_SPLIT_RE = re.compile(r"[-_]")


def extract_terms(text: str) -> set[str]:
    """Normalize free text into significant lowercase terms.

    Lowercases, turns every character outside ``[a-z0-9]`` and whitespace into
    a space, then drops tokens shorter than three characters and stop words.
    """
    words = _NON_ALNUM_RE.sub(" ", text.lower()).split()
    return {w for w in words if len(w) >= MIN_TERM_LENGTH and w not in STOP_WORDS}


def count_matches(items: Iterable[str], terms: Iterable[str]) -> int:
    """Count entries of ``items`` present in ``terms``, case-insensitively."""
    lowered = {t.lower() for t in terms}
    return sum(1 for item in items if item.lower() in lowered)


def category_terms(file_name: str) -> list[str]:
    """Split a memory file name into topic words.

    ``authentication-decisions.md`` gives ``["authentication", "decisions"]``.
    """
    stem = file_name.removesuffix(".md")
    return [
        part.lower() for part in _CATEGORY_SPLIT_RE.split(stem)
        if len(part) >= MIN_TERM_LENGTH
    ]
