"""Confidence scoring for a single extraction attempt.

Combines a base score for the extraction method with bonuses for text
length, alphabetic share, and credit-report keyword density.
"""

import re

from src.utils.config import ConfidenceConfig
from src.utils.logger import get_logger

logger = get_logger(__name__)

_ALPHA = re.compile(r"[a-zA-Z]")
_KEYWORDS = re.compile(r"credit|report|account|balance|payment|inquiry", re.IGNORECASE)

_LENGTH_BONUS = 0.3
_ALPHA_BONUS = 0.2
_KEYWORD_BONUS = 0.2

STRUCTURE_INDICATORS: list[re.Pattern[str]] = [
    re.compile(r"credit\s*report", re.IGNORECASE),
    re.compile(r"personal\s*information|PERSONAL_INFO", re.IGNORECASE),
    re.compile(r"account\s*number", re.IGNORECASE),
    re.compile(r"payment\s*history", re.IGNORECASE),
    re.compile(r"credit\s*score", re.IGNORECASE),
    re.compile(r"inquiry|inquiries", re.IGNORECASE),
    re.compile(r"creditor", re.IGNORECASE),
    re.compile(r"balance", re.IGNORECASE),
]


class ConfidenceScorer:
    """Assigns a confidence in ``[0, max_confidence]`` to extracted text.

    Args:
        config: Method base scores and bonus caps.
    """

    def __init__(self, config: ConfidenceConfig | None = None) -> None:
        self.config = config or ConfidenceConfig()

    def base_score(self, method: str) -> float:
        """Base confidence for an extraction method tag."""
        return self.config.method_scores.get(method, self.config.unknown_method_score)

    def score(self, text: str, method: str) -> float:
        """Score extracted text produced by ``method``.

        Args:
            text: Raw extracted text.
            method: Extraction method tag.

        Returns:
            Confidence clamped to ``[0, max_confidence]``.
        """
        if not text or len(text) < self.config.min_text_length:
            return 0.0

        length_score = min(_LENGTH_BONUS, len(text) / self.config.length_cap)
        alpha_ratio = len(_ALPHA.findall(text)) / len(text)
        keyword_hits = len(_KEYWORDS.findall(text))
        keyword_score = min(_KEYWORD_BONUS, keyword_hits / self.config.keyword_cap)

        quality_bonus = length_score + alpha_ratio * _ALPHA_BONUS + keyword_score
        confidence = self.base_score(method) + quality_bonus
        confidence = max(0.0, min(self.config.max_confidence, confidence))

        logger.debug(
            "Confidence for %s: %.3f (length=%.3f alpha=%.3f keywords=%d)",
            method,
            confidence,
            length_score,
            alpha_ratio,
            keyword_hits,
        )
        return confidence


def has_structured_data(text: str, min_length: int = 200, min_indicators: int = 3) -> bool:
    """Whether text looks like a credit report with extractable sections.

    Args:
        text: Extracted text.
        min_length: Shorter texts never count as structured.
        min_indicators: Number of distinct report indicators required.
    """
    if not text or len(text) < min_length:
        return False
    matches = sum(1 for pattern in STRUCTURE_INDICATORS if pattern.search(text))
    return matches >= min_indicators
