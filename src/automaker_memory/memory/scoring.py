"""Relevance scoring for memory files.

score = (3 * tag matches
         + 2 * relevantTo matches
         + 1 * summary term matches
         + 4 * category matches) * importance * usage_score

With no task terms the score is the file's importance, so ranking falls
back to "most important first".
"""

from collections.abc import Set

from .models import MemoryMetadata, UsageStats
from .terms import category_terms, count_matches, extract_terms

TAG_WEIGHT = 3
RELEVANT_TO_WEIGHT = 2
SUMMARY_WEIGHT = 1
CATEGORY_WEIGHT = 4


def usage_score(stats: UsageStats) -> float:
    """Multiplier derived from historical usage.

    A file that was never loaded is neutral (1.0). Otherwise the result lies
    in [0.5, 1.0]: base 0.5, up to 0.3 for how often it was referenced once
    loaded, up to 0.2 for how often a reference ended in a successful feature.
    """
    if stats.loaded == 0:
        return 1.0

    # Counters are not cross-checked on write, so rates are capped at 1
    reference_rate = min(1.0, stats.referenced / stats.loaded)
    success_rate = (
        min(1.0, stats.successful_features / stats.referenced)
        if stats.referenced > 0
        else 0.0
    )
    return 0.5 + reference_rate * 0.3 + success_rate * 0.2


def score_memory(
    file_name: str,
    metadata: MemoryMetadata,
    task_terms: Set[str],
) -> float:
    """Relevance of a memory file to a task.

    Args:
        file_name: Memory file name; its hyphen/underscore pieces count as
            category terms.
        metadata: Parsed frontmatter of the file.
        task_terms: Terms extracted from the task title and description.

    Returns:
        Non-negative score.
    """
    if not task_terms:
        return metadata.importance

    tag_score = count_matches(metadata.tags, task_terms) * TAG_WEIGHT
    relevant_to_score = count_matches(metadata.relevant_to, task_terms) * RELEVANT_TO_WEIGHT
    summary_score = count_matches(extract_terms(metadata.summary), task_terms) * SUMMARY_WEIGHT
    category_score = count_matches(category_terms(file_name), task_terms) * CATEGORY_WEIGHT

    return (
        (tag_score + relevant_to_score + summary_score + category_score)
        * metadata.importance
        * usage_score(metadata.usage_stats)
    )
