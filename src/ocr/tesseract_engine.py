"""Primary OCR collaborator backed by Tesseract.

Renders each page of the uploaded report and runs Tesseract on it; the page
texts are joined into one document text tagged with the ``tesseract``
method.
"""

from dataclasses import dataclass

import numpy as np
import pytesseract
from PIL import Image

from src.utils.config import OCRConfig
from src.utils.logger import get_logger

from .base import OCROutput
from .pdf_handler import PDFHandler

logger = get_logger(__name__)

PAGE_SEPARATOR = "\n\n"


@dataclass
class PageText:
    """OCR text of one page with Tesseract's mean word confidence."""

    page_number: int
    text: str
    confidence: float


class TesseractOCR:
    """OCR collaborator that runs Tesseract over every page.

    Args:
        config: OCR settings (language, page segmentation mode, DPI).
        pdf_handler: Page renderer; built from ``config`` when omitted.
    """

    method = "tesseract"

    def __init__(
        self, config: OCRConfig | None = None, pdf_handler: PDFHandler | None = None
    ) -> None:
        self.config = config or OCRConfig()
        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd
        self.pdf_handler = pdf_handler or PDFHandler(dpi=self.config.pdf_dpi)

    def read_page(self, image: np.ndarray, page_number: int = 1) -> PageText:
        """Run Tesseract on one page image.

        Args:
            image: Page image as a numpy array.
            page_number: 1-based page index used for logging.
        """
        options = f"--psm {self.config.psm}"
        pil_image = Image.fromarray(image)
        text = pytesseract.image_to_string(
            pil_image, lang=self.config.default_lang, config=options
        )
        data = pytesseract.image_to_data(
            pil_image,
            lang=self.config.default_lang,
            config=options,
            output_type=pytesseract.Output.DICT,
        )

        confidences = [
            float(conf)
            for conf, word in zip(data["conf"], data["text"], strict=False)
            if float(conf) > 0 and str(word).strip()
        ]
        mean_conf = sum(confidences) / len(confidences) / 100.0 if confidences else 0.0

        logger.debug(
            "Page %d: %d words, mean confidence %.2f",
            page_number,
            len(confidences),
            mean_conf,
        )
        return PageText(page_number=page_number, text=text, confidence=mean_conf)

    def extract(self, document: bytes) -> OCROutput:
        """Extract the text of every page of a document.

        Args:
            document: Raw PDF or image bytes.

        Returns:
            Joined page text tagged with the ``tesseract`` method.
        """
        pages = [
            self.read_page(image, number)
            for number, image in enumerate(self.pdf_handler.to_images(document), 1)
        ]
        text = PAGE_SEPARATOR.join(page.text.strip() for page in pages).strip()
        logger.info(
            "Tesseract extracted %d characters from %d pages", len(text), len(pages)
        )
        return OCROutput(text=text, method=self.method)
