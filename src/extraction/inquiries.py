"""Fuzzy extraction of credit inquiries."""

from src.utils.logger import get_logger

from .models import CreditInquiry
from .patterns import DEFAULT_INQUIRY_PATTERNS, SECTION_TOKENS, InquiryPatterns

logger = get_logger(__name__)


class InquiryExtractor:
    """Extracts (inquirer, date) pairs from two pattern families.

    Name-date adjacency pairs are searched inside the ``INQUIRIES`` section
    when the normalizer found one, otherwise across the whole text. Labeled
    ``inquiry:`` entries are searched across the whole text. Untyped
    inquiries default to ``hard``.

    Args:
        patterns: Inquiry pattern table.
        reserved_words: Section tokens that can never be an inquirer name.
    """

    def __init__(
        self,
        patterns: InquiryPatterns = DEFAULT_INQUIRY_PATTERNS,
        reserved_words: frozenset[str] = frozenset(SECTION_TOKENS),
    ) -> None:
        self.patterns = patterns
        self.reserved_words = reserved_words

    def _section(self, text: str) -> str:
        start = self.patterns.section_start.search(text)
        if start is None:
            return text
        rest = text[start.end() :]
        end = self.patterns.section_end.search(rest)
        return rest[: end.start()] if end else rest

    def _clean_name(self, name: str) -> str | None:
        words = [w for w in name.split() if w not in self.reserved_words]
        cleaned = " ".join(words).strip(" -:,")
        if not (
            self.patterns.min_name_length
            <= len(cleaned)
            <= self.patterns.max_name_length
        ):
            return None
        return cleaned

    def extract(self, text: str) -> list[CreditInquiry]:
        """Extract inquiries from normalized text.

        Args:
            text: Normalized report text.

        Returns:
            Unique inquiries in discovery order.
        """
        inquiries: list[CreditInquiry] = []
        if not text:
            return inquiries

        seen: set[tuple[str, str | None]] = set()

        def _add(name: str | None, date: str | None) -> None:
            if name is None or (name, date) in seen:
                return
            seen.add((name, date))
            inquiries.append(CreditInquiry(inquirer_name=name, inquiry_date=date))

        for match in self.patterns.name_date.finditer(self._section(text)):
            _add(self._clean_name(match.group(1)), match.group(2))

        for match in self.patterns.labeled.finditer(text):
            chunk = match.group(1)
            date_match = self.patterns.date.search(chunk)
            if date_match:
                name = self._clean_name(chunk[: date_match.start()])
                _add(name, date_match.group(1))
            else:
                _add(self._clean_name(chunk), None)

        logger.debug("Inquiry extraction found %d inquiries", len(inquiries))
        return inquiries
