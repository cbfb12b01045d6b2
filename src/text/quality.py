"""Heuristic quality scoring of normalized OCR text.

The score is advisory: a low score marks an extraction attempt as low
confidence but never stops extraction.
"""

import re

from src.utils.logger import get_logger

logger = get_logger(__name__)

DOMAIN_KEYWORDS: tuple[str, ...] = (
    "credit",
    "account",
    "balance",
    "payment",
    "report",
    "bureau",
    "equifax",
    "experian",
    "transunion",
    "fico",
    "score",
    "inquiry",
    "collection",
    "tradeline",
    "creditor",
    "bank",
    "card",
)

_ALPHA = re.compile(r"[a-zA-Z]")
_DIGIT = re.compile(r"[0-9]")
_SPACE = re.compile(r"\s")

_ALPHA_POINTS = 30
_DIGIT_POINTS = 20
_SPACE_POINTS = 20
_KEYWORD_POINTS = 5
_KEYWORD_CAP = 30


class QualityScorer:
    """Scores normalized text from 0 to 100.

    Args:
        min_length: Texts shorter than this score 0.
        threshold: Scores below this are considered low quality.
        keywords: Domain keywords worth points when present.
    """

    def __init__(
        self,
        min_length: int = 100,
        threshold: int = 40,
        keywords: tuple[str, ...] = DOMAIN_KEYWORDS,
    ) -> None:
        self.min_length = min_length
        self.threshold = threshold
        self.keywords = keywords

    def score(self, text: str) -> int:
        """Compute the quality score of a normalized text.

        Args:
            text: Normalized text.

        Returns:
            Integer score in ``[0, 100]``.
        """
        if not text or len(text) < self.min_length:
            return 0

        total = len(text)
        alpha_ratio = len(_ALPHA.findall(text)) / total
        digit_ratio = len(_DIGIT.findall(text)) / total
        space_ratio = len(_SPACE.findall(text)) / total

        score = 0
        if 0.3 < alpha_ratio < 0.8:
            score += _ALPHA_POINTS
        if 0.05 < digit_ratio < 0.3:
            score += _DIGIT_POINTS
        if 0.1 < space_ratio < 0.3:
            score += _SPACE_POINTS

        lowered = text.lower()
        keyword_count = sum(1 for keyword in self.keywords if keyword in lowered)
        score += min(keyword_count * _KEYWORD_POINTS, _KEYWORD_CAP)

        logger.debug(
            "Quality score %d (alpha=%.2f digit=%.2f space=%.2f keywords=%d)",
            score,
            alpha_ratio,
            digit_ratio,
            space_ratio,
            keyword_count,
        )
        return max(0, min(100, score))

    def is_low_quality(self, score: int) -> bool:
        """Whether a score falls below the advisory threshold."""
        return score < self.threshold


def score_text_quality(text: str) -> int:
    """Score text with the default thresholds and keyword list."""
    return QualityScorer().score(text)
