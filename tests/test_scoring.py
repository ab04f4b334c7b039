"""
Tests for the pure scoring helpers: similarity, clamping, rounding,
recommendation thresholds and suggestion ordering.
"""

import pytest

from submission_review.models import FlagCode, RecommendedAction
from submission_review.scoring import (
    SUGGESTIONS,
    FlagSet,
    build_suggestions,
    clamp,
    decide_action,
    round_score,
    title_similarity,
)


class TestTitleSimilarity:

    def test_partial_overlap_stays_below_duplicate_threshold(self):
        similarity = title_similarity("Fastest 100m sprint", "Fastest 100m run")
        assert similarity == pytest.approx(2 / 3)
        assert not similarity > 0.8

    def test_identical_titles(self):
        assert title_similarity("Longest handstand", "Longest handstand") == 1.0

    def test_case_insensitive(self):
        assert title_similarity("MOST Push Ups", "most push ups") == 1.0

    def test_divides_by_longer_title(self):
        assert title_similarity("push ups", "most push ups in a minute") == pytest.approx(2 / 6)

    def test_extra_whitespace_is_ignored(self):
        assert title_similarity("  fastest   mile ", "fastest mile") == 1.0

    def test_empty_titles(self):
        assert title_similarity("", "") == 0.0
        assert title_similarity("", "fastest mile") == 0.0


class TestClampAndRound:

    @pytest.mark.parametrize("raw,expected", [(-0.4, 0.0), (0.0, 0.0), (0.55, 0.55), (1.8, 1.0)])
    def test_clamp(self, raw, expected):
        assert clamp(raw) == expected

    def test_round_two_decimals(self):
        assert round_score(1.0 - 0.2 - 0.1 - 0.3) == 0.4
        assert round_score(0.3 + 0.2 + 0.2) == 0.7

    def test_round_half_up(self):
        assert round_score(0.125) == 0.13
        assert round_score(0.135) == 0.14


class TestDecideAction:

    @pytest.mark.parametrize("fraud_score,flag_count,expected", [
        (0.75, 1, RecommendedAction.REJECT),
        (0.7, 0, RecommendedAction.REVIEW),
        (0.4, 0, RecommendedAction.APPROVE),
        (0.5, 1, RecommendedAction.REVIEW),
        (0.3, 3, RecommendedAction.REVIEW),
        (0.3, 2, RecommendedAction.APPROVE),
        (0.0, 0, RecommendedAction.APPROVE),
    ])
    def test_thresholds(self, fraud_score, flag_count, expected):
        flags = FlagSet([FlagCode.SHORT_TITLE, FlagCode.SHORT_DESCRIPTION, FlagCode.SPAM_DETECTED][:flag_count])
        assert decide_action(fraud_score, flags) == expected

    def test_inappropriate_content_always_rejects(self):
        flags = FlagSet([FlagCode.INAPPROPRIATE_CONTENT])
        assert decide_action(0.0, flags) == RecommendedAction.REJECT

    def test_reject_checked_before_review(self):
        flags = FlagSet([FlagCode.SHORT_TITLE, FlagCode.SHORT_DESCRIPTION, FlagCode.MISSING_EVIDENCE])
        assert decide_action(0.9, flags) == RecommendedAction.REJECT


class TestFlagSet:

    def test_deduplicates_and_keeps_order(self):
        flags = FlagSet()
        assert flags.add(FlagCode.SHORT_TITLE)
        assert flags.add(FlagCode.MISSING_EVIDENCE)
        assert not flags.add(FlagCode.SHORT_TITLE)
        assert flags.as_list() == [FlagCode.SHORT_TITLE, FlagCode.MISSING_EVIDENCE]
        assert len(flags) == 2


class TestSuggestions:

    def test_fixed_priority_order(self):
        flags = FlagSet([
            FlagCode.LOW_QUALITY_CONTENT,
            FlagCode.DUPLICATE_SUBMISSION,
            FlagCode.SHORT_DESCRIPTION,
        ])
        suggestions = build_suggestions(flags)
        assert suggestions == [SUGGESTIONS[0][1], SUGGESTIONS[3][1], SUGGESTIONS[5][1]]

    def test_evidence_flags_share_one_suggestion(self):
        both = build_suggestions(FlagSet([FlagCode.MISSING_EVIDENCE, FlagCode.INVALID_EVIDENCE_LINK]))
        assert len(both) == 1
        assert "Google Drive" in both[0]

    def test_unmapped_flags_have_no_suggestion(self):
        # Known gap: these flags score but carry no advice text.
        flags = FlagSet([
            FlagCode.HIGH_SUBMISSION_FREQUENCY,
            FlagCode.HIGH_REJECTION_HISTORY,
            FlagCode.SPAM_DETECTED,
        ])
        assert build_suggestions(flags) == []
