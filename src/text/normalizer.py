"""Normalization of raw OCR text before scoring and extraction.

Strips non-printable characters, collapses whitespace, repairs common OCR
confusions, and rewrites credit report section headers to single tokens so
that extractors can anchor on them.
"""

import re
from collections.abc import Sequence

from src.utils.logger import get_logger

logger = get_logger(__name__)

_NON_PRINTABLE = re.compile(r"[^\x20-\x7E\n\t]")
_WHITESPACE = re.compile(r"\s+")

# (pattern, replacement) applied in order after whitespace collapsing
DEFAULT_OCR_CORRECTIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(?<![\w$.,/-])0(?![\w.,/-])"), "O"),
    (re.compile(r"(?<![\w$.,/-])l(?![\w.,/-])"), "I"),
)

# Runs of single characters separated by single spaces, e.g. "1 2 3 4"
_SPLIT_DIGITS = re.compile(r"\b\d(?: \d\b)+")
_SPLIT_CAPITALS = re.compile(r"\b[A-Z](?: [A-Z]\b){2,}")

DEFAULT_SECTION_HEADERS: tuple[tuple[str, str], ...] = (
    ("PERSONAL INFORMATION", "PERSONAL_INFO"),
    ("CONSUMER INFORMATION", "PERSONAL_INFO"),
    ("ACCOUNT INFORMATION", "ACCOUNTS"),
    ("CREDIT ACCOUNTS", "ACCOUNTS"),
    ("TRADELINE INFORMATION", "ACCOUNTS"),
    ("CREDIT INQUIRIES", "INQUIRIES"),
    ("INQUIRIES", "INQUIRIES"),
    ("PUBLIC RECORDS", "PUBLIC_RECORDS"),
    ("COLLECTIONS", "COLLECTIONS"),
)


def _compile_headers(
    headers: Sequence[tuple[str, str]],
) -> tuple[tuple[re.Pattern[str], str], ...]:
    compiled = []
    for phrase, token in headers:
        words = [re.escape(w) for w in phrase.split()]
        pattern = re.compile(r"\b" + r"\s+".join(words) + r"\b", re.IGNORECASE)
        compiled.append((pattern, token))
    return tuple(compiled)


def _join_split_run(match: re.Match[str]) -> str:
    return match.group(0).replace(" ", "")


class TextNormalizer:
    """Pure text normalizer with injectable correction and header tables.

    Args:
        corrections: Ordered ``(pattern, replacement)`` OCR fixes.
        section_headers: ``(phrase, token)`` pairs; phrases match
            case-insensitively with any whitespace between words.
    """

    def __init__(
        self,
        corrections: Sequence[tuple[re.Pattern[str], str]] = DEFAULT_OCR_CORRECTIONS,
        section_headers: Sequence[tuple[str, str]] = DEFAULT_SECTION_HEADERS,
    ) -> None:
        self.corrections = tuple(corrections)
        self.section_headers = _compile_headers(section_headers)

    def normalize(self, text: str | None) -> str:
        """Normalize raw OCR text.

        Never raises; empty or garbage input produces an empty or
        near-empty string which downstream stages treat as low quality.

        Args:
            text: Raw OCR text, possibly ``None``.

        Returns:
            Normalized single-line text.
        """
        if not text:
            return ""

        cleaned = _NON_PRINTABLE.sub(" ", text)
        cleaned = _WHITESPACE.sub(" ", cleaned).strip()

        for pattern, replacement in self.corrections:
            cleaned = pattern.sub(replacement, cleaned)
        cleaned = _SPLIT_DIGITS.sub(_join_split_run, cleaned)
        cleaned = _SPLIT_CAPITALS.sub(_join_split_run, cleaned)

        for pattern, token in self.section_headers:
            cleaned = pattern.sub(token, cleaned)

        logger.debug("Normalized text: %d -> %d characters", len(text), len(cleaned))
        return cleaned


_default_normalizer = TextNormalizer()


def normalize_text(text: str | None) -> str:
    """Normalize text with the default correction and header tables."""
    return _default_normalizer.normalize(text)
