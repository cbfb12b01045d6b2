"""Shared test fixtures for the credit report pipeline test suite."""

import time
from collections.abc import Callable
from pathlib import Path

import pytest

from src.errors import OCRError
from src.ocr.base import OCROutput
from src.pipeline.service import CreditReportPipeline
from src.storage.repository import InMemoryReportRepository
from src.utils.config import AppConfig

SAMPLE_REPORT = """CREDIT REPORT
PERSONAL INFORMATION
Name: John Michael Smith
SSN: ***-**-1234
Date of Birth: 03/15/1980
Address: 123 Main Street, Springfield, IL 62701
ACCOUNT INFORMATION
CHASE BANK Account Number: ****5678 Balance: $1,250.00 Status: Current
CAPITAL ONE CARD Account Number: ****9012 Balance: $540.00 Status: 45 days late
CREDIT INQUIRIES
DISCOVER FINANCIAL 01/10/2024
WELLS FARGO 02/20/2024
PUBLIC RECORDS
None reported
"""

SHORT_TEXT = "Credit Report - page 1 of 3 - illegible."


class FakeOCR:
    """In-process OCR collaborator returning canned text or raising."""

    def __init__(
        self,
        text: str | None = None,
        method: str = "tesseract",
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.text = text
        self.method = method
        self.error = error
        self.delay = delay
        self.calls = 0

    def extract(self, document: bytes) -> OCROutput:
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.text is None:
            raise OCRError(f"{self.method} produced no text")
        return OCROutput(text=self.text, method=self.method)


@pytest.fixture
def sample_report_text() -> str:
    """Raw OCR text of a small but complete credit report."""
    return SAMPLE_REPORT


@pytest.fixture
def short_text() -> str:
    """OCR text of exactly 40 characters."""
    return SHORT_TEXT


@pytest.fixture
def make_ocr() -> Callable[..., FakeOCR]:
    """Factory for fake OCR collaborators."""
    return FakeOCR


@pytest.fixture
def repository() -> InMemoryReportRepository:
    return InMemoryReportRepository()


@pytest.fixture
def app_config() -> AppConfig:
    """Default configuration with a short OCR timeout for tests."""
    config = AppConfig()
    config.ocr.timeout_seconds = 2.0
    return config


@pytest.fixture
def make_pipeline(
    repository: InMemoryReportRepository, app_config: AppConfig
) -> Callable[..., CreditReportPipeline]:
    """Factory building a pipeline around fake OCR collaborators."""

    def _build(
        primary: FakeOCR, fallback: FakeOCR | None = None
    ) -> CreditReportPipeline:
        return CreditReportPipeline(repository, primary, fallback, app_config)

    return _build


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
