"""Degraded fallback extraction that scrapes text operators out of PDFs.

No rendering and no OCR: the raw PDF bytes are decoded and searched for
string literals. This only works for uncompressed text-based PDFs, which is
why results from this method carry a low base confidence.
"""

import re

from src.errors import OCRError
from src.utils.logger import get_logger

from .base import OCROutput

logger = get_logger(__name__)

_PAREN_STRING = re.compile(r"\((.*?)\)")
_TJ_ARRAY = re.compile(r"\[(.*?)\]\s*TJ")
_TEXT_BLOCK = re.compile(r"BT\s*(.*?)\s*ET", re.DOTALL)
_TJ_STRING = re.compile(r"\((.*?)\)\s*Tj")
_BLANK = re.compile(r"^[\s\n\r]*$")
_WHITESPACE = re.compile(r"\s+")

_ESCAPES = (("\\n", "\n"), ("\\r", "\r"), ("\\t", "\t"), ("\\\\", "\\"))


class FallbackPDFParser:
    """Fallback collaborator used when the primary OCR method fails.

    Args:
        min_length: Minimum characters a strategy must produce before the
            next strategy is skipped, and before the result is accepted.
    """

    method = "fallback"

    def __init__(self, min_length: int = 100) -> None:
        self.min_length = min_length

    def _parenthesised(self, content: str) -> str:
        return " ".join(
            s for s in _PAREN_STRING.findall(content) if len(s) > 2 and not _BLANK.match(s)
        )

    def _tj_arrays(self, content: str) -> str:
        return " ".join(s for s in _TJ_ARRAY.findall(content) if len(s) > 2)

    def _text_blocks(self, content: str) -> str:
        blocks = (" ".join(_TJ_STRING.findall(block)) for block in _TEXT_BLOCK.findall(content))
        return " ".join(b for b in blocks if len(b) > 2)

    def extract(self, document: bytes) -> OCROutput:
        """Scrape text out of raw PDF bytes.

        Tries parenthesised strings, then ``TJ`` arrays, then ``BT … ET``
        blocks, keeping the first strategy that yields enough text.

        Raises:
            OCRError: If no strategy yields ``min_length`` characters.
        """
        content = document.decode("utf-8", errors="ignore")

        text = ""
        for strategy in (self._parenthesised, self._tj_arrays, self._text_blocks):
            text = strategy(content)
            if len(text) >= self.min_length:
                break

        for escaped, char in _ESCAPES:
            text = text.replace(escaped, char)
        text = _WHITESPACE.sub(" ", text).strip()

        logger.info("Fallback parser extracted %d characters", len(text))
        if len(text) < self.min_length:
            raise OCRError(
                "Insufficient text extracted from PDF - likely an image-based document"
            )
        return OCROutput(text=text, method=self.method)
