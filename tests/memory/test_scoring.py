"""Tests for memory relevance scoring."""

import pytest

from automaker_memory.memory import MemoryMetadata, UsageStats, score_memory, usage_score


class TestUsageScore:
    """Tests for usage_score."""

    def test_never_loaded_is_neutral(self):
        assert usage_score(UsageStats()) == 1.0

    def test_loaded_but_never_referenced(self):
        """The floor is 0.5 once a file has been loaded."""
        assert usage_score(UsageStats(loaded=10)) == 0.5

    def test_partial_usage(self):
        stats = UsageStats(loaded=10, referenced=5, successful_features=5)
        assert usage_score(stats) == pytest.approx(0.85)

    def test_inconsistent_counters_capped(self):
        """Counters larger than their base still give at most 1.0."""
        stats = UsageStats(loaded=2, referenced=5, successful_features=9)
        assert usage_score(stats) == pytest.approx(1.0)

    @pytest.mark.parametrize("loaded,referenced,successful", [
        (1, 0, 0),
        (1, 1, 0),
        (1, 1, 1),
        (7, 3, 2),
        (100, 1, 1),
    ])
    def test_bounds(self, loaded: int, referenced: int, successful: int):
        score = usage_score(UsageStats(loaded, referenced, successful))
        assert 0.5 <= score <= 1.0


class TestScoreMemory:
    """Tests for score_memory."""

    def test_no_terms_returns_importance(self):
        metadata = MemoryMetadata(importance=0.8)
        assert score_memory("anything.md", metadata, set()) == 0.8

    def test_weighted_matches(self):
        """Tags, relevantTo, summary and category matches are weighted."""
        metadata = MemoryMetadata(
            tags=["auth", "jwt"],
            summary="Token refresh handling",
            relevant_to=["login"],
            importance=0.5,
        )
        terms = {"auth", "jwt", "login", "token", "decisions"}

        # (2*3 + 1*2 + 1*1 + 2*4) * 0.5 * 1.0
        assert score_memory("auth-decisions.md", metadata, terms) == pytest.approx(8.5)

    def test_usage_scales_score(self):
        """Historical usage multiplies the relevance score."""
        metadata = MemoryMetadata(
            tags=["auth"],
            importance=1.0,
            usage_stats=UsageStats(loaded=4),
        )
        assert score_memory("notes.md", metadata, {"auth"}) == pytest.approx(1.5)

    def test_unrelated_file_scores_zero(self):
        metadata = MemoryMetadata(tags=["css"], importance=1.0)
        assert score_memory("styling.md", metadata, {"database"}) == 0.0
