"""Tests for per-attempt confidence scoring."""

import pytest

from src.extraction.confidence import ConfidenceScorer, has_structured_data
from src.utils.config import ConfidenceConfig


class TestConfidenceScorer:
    """Tests for the ConfidenceScorer."""

    def setup_method(self) -> None:
        self.scorer = ConfidenceScorer()

    def test_short_text_scores_zero(self) -> None:
        assert self.scorer.score("credit report", "tesseract") == 0.0
        assert self.scorer.score("", "tesseract") == 0.0

    def test_base_scores(self) -> None:
        assert self.scorer.base_score("tesseract") == 0.86
        assert self.scorer.base_score("fallback") == 0.3
        assert self.scorer.base_score("something-else") == 0.6

    def test_length_and_alpha_bonus(self) -> None:
        # 0.3 base + 100/10000 length + 1.0 * 0.2 alpha
        assert self.scorer.score("a" * 100, "fallback") == pytest.approx(0.51)

    def test_keyword_bonus_capped(self) -> None:
        text = "credit " * 100
        expected = 0.3 + 0.07 + (600 / 700) * 0.2 + 0.2
        assert self.scorer.score(text, "fallback") == pytest.approx(expected)

    def test_clamped_below_one(self, sample_report_text: str) -> None:
        assert self.scorer.score(sample_report_text, "tesseract") == 0.99

    def test_fallback_scores_lower(self, sample_report_text: str) -> None:
        fallback = self.scorer.score(sample_report_text, "fallback")
        assert 0.3 < fallback < self.scorer.score(sample_report_text, "tesseract")

    def test_custom_method_scores(self) -> None:
        scorer = ConfidenceScorer(ConfidenceConfig(method_scores={"vendor": 0.1}))
        assert scorer.base_score("vendor") == 0.1
        assert scorer.base_score("tesseract") == 0.6


class TestHasStructuredData:
    """Tests for the structured-report heuristic."""

    def test_sample_report(self, sample_report_text: str) -> None:
        assert has_structured_data(sample_report_text) is True

    def test_short_text(self, short_text: str) -> None:
        assert has_structured_data(short_text) is False

    def test_long_text_without_indicators(self) -> None:
        assert has_structured_data("lorem ipsum dolor sit amet " * 20) is False

    def test_two_indicators_not_enough(self) -> None:
        text = "credit report with balance " + "filler text " * 30
        assert has_structured_data(text) is False
