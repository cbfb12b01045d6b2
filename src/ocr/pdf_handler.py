"""Conversion of uploaded report documents into page images for OCR.

Accepts raw bytes of a PDF or a single image (PNG, JPEG, TIFF) and returns
one numpy array per page.
"""

import io

import numpy as np
from pdf2image import convert_from_bytes
from PIL import Image, UnidentifiedImageError

from src.errors import OCRError
from src.utils.logger import get_logger

logger = get_logger(__name__)

PDF_MAGIC = b"%PDF"


def is_pdf(document: bytes) -> bool:
    return document[:4] == PDF_MAGIC


class PDFHandler:
    """Renders documents to page images.

    Args:
        dpi: Resolution for PDF rendering. Higher values produce
            better OCR results but use more memory.
    """

    def __init__(self, dpi: int = 300) -> None:
        self.dpi = dpi

    def to_images(self, document: bytes) -> list[np.ndarray]:
        """Convert document bytes to a list of page images.

        Args:
            document: Raw PDF or image bytes.

        Returns:
            Page images as numpy arrays.

        Raises:
            OCRError: If the bytes cannot be rendered.
        """
        if not document:
            raise OCRError("Empty document")

        try:
            if is_pdf(document):
                pages = convert_from_bytes(document, dpi=self.dpi)
            else:
                pages = [Image.open(io.BytesIO(document))]
        except UnidentifiedImageError as exc:
            raise OCRError(f"Unsupported document format: {exc}") from exc
        except Exception as exc:
            raise OCRError(f"PDF conversion failed: {exc}") from exc

        images = [np.array(page) for page in pages]
        logger.info(
            "Rendered document to %d page images at %d DPI", len(images), self.dpi
        )
        return images
