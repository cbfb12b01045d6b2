"""Keyword scan for derogatory marks with a fixed severity per category."""

from src.utils.logger import get_logger

from .models import NegativeItem
from .patterns import (
    DEFAULT_NEGATIVE_ITEM_PATTERNS,
    SECTION_TOKENS,
    NegativeItemPatterns,
)

logger = get_logger(__name__)


class NegativeItemExtractor:
    """Produces one item per keyword match, with surrounding context.

    Args:
        patterns: Category keyword patterns and the context radius.
        reserved_words: Section tokens that are headers, never derogatory marks.
    """

    def __init__(
        self,
        patterns: NegativeItemPatterns = DEFAULT_NEGATIVE_ITEM_PATTERNS,
        reserved_words: frozenset[str] = frozenset(SECTION_TOKENS),
    ) -> None:
        self.patterns = patterns
        self.reserved_words = reserved_words

    def severity_for(self, item_type: str) -> int:
        """Severity of a category; unknown categories score 5."""
        for category in self.patterns.categories:
            if category.item_type == item_type:
                return category.severity
        return 5

    def extract(self, text: str) -> list[NegativeItem]:
        """Scan normalized text for every negative category keyword.

        Args:
            text: Normalized report text.

        Returns:
            Items grouped by category in table order, each in text order.
        """
        items: list[NegativeItem] = []
        if not text:
            return items

        radius = self.patterns.context_radius
        for category in self.patterns.categories:
            for match in category.pattern.finditer(text):
                if match.group(0) in self.reserved_words:
                    continue
                start = max(0, match.start() - radius)
                end = min(len(text), match.start() + radius)
                items.append(
                    NegativeItem(
                        item_type=category.item_type,
                        description=text[start:end].strip(),
                        severity_score=category.severity,
                        dispute_eligible=True,
                    )
                )

        logger.debug("Negative item scan found %d items", len(items))
        return items
