"""Exception hierarchy for the credit report pipeline.

Input errors fail fast and ask the user to re-upload. Quality errors mark
the report failed with a specific diagnostic. Consolidation errors are hard
errors: the engine never invents a canonical result. Low confidence and
conflicts are not errors at all.
"""

REUPLOAD_MESSAGE = "Please re-upload the document."


class CreditPipelineError(Exception):
    """Base class for all pipeline errors."""


class InputError(CreditPipelineError):
    """The report or its source document is unavailable."""

    user_message = REUPLOAD_MESSAGE


class ReportNotFoundError(InputError):
    def __init__(self, report_id: str) -> None:
        super().__init__(f"Report not found: {report_id}")
        self.report_id = report_id


class MissingDocumentError(InputError):
    def __init__(self, report_id: str) -> None:
        super().__init__(f"No source document stored for report {report_id}")
        self.report_id = report_id


class OCRError(CreditPipelineError):
    """The OCR collaborator failed to produce text."""


class OCRTimeoutError(OCRError):
    def __init__(self, method: str, timeout_seconds: float) -> None:
        super().__init__(f"OCR method '{method}' timed out after {timeout_seconds}s")
        self.method = method
        self.timeout_seconds = timeout_seconds


class QualityError(CreditPipelineError):
    """Text is present but below structural thresholds."""


class InsufficientTextError(QualityError):
    def __init__(self, character_count: int, minimum: int, methods: list[str]) -> None:
        tried = ", ".join(methods) if methods else "none"
        super().__init__(
            f"Insufficient text extracted: {character_count} characters "
            f"(minimum {minimum}, methods tried: {tried})"
        )
        self.character_count = character_count
        self.minimum = minimum
        self.methods = methods


class NoStructuredDataError(QualityError):
    def __init__(self, method: str) -> None:
        super().__init__(
            f"No structured fields found by any extractor in '{method}' text"
        )
        self.method = method


class ConsolidationError(CreditPipelineError):
    """Consolidation could not produce a canonical result."""


class NoExtractionResultsError(ConsolidationError):
    def __init__(self, report_id: str | None = None) -> None:
        target = f" for report {report_id}" if report_id else ""
        super().__init__(f"No data to consolidate: no extraction results{target}")
        self.report_id = report_id


class UnknownStrategyError(ConsolidationError):
    def __init__(self, strategy: str) -> None:
        super().__init__(f"Unknown consolidation strategy: {strategy}")
        self.strategy = strategy
