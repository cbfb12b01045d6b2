"""Public entry point tying the pipeline, auditor, and repository together."""

from src.consolidation.engine import ExtractionComparison, ExtractionSummary, window_start
from src.diagnostics.auditor import AuditReport, DiagnosticAuditor
from src.errors import ReportNotFoundError
from src.ocr.base import OCRCollaborator
from src.ocr.fallback_parser import FallbackPDFParser
from src.ocr.tesseract_engine import TesseractOCR
from src.storage.models import ConsolidationMetadata, ConsolidationStrategy, ReportRecord
from src.storage.repository import InMemoryReportRepository, ReportRepository
from src.utils.config import AppConfig
from src.utils.logger import get_logger

from .orchestrator import PipelineOrchestrator, PipelineOutcome, ReconsolidationResult

logger = get_logger(__name__)


class CreditReportPipeline:
    """Upload, process, re-consolidate, and audit credit reports.

    Args:
        repository: Persistence collaborator.
        primary: Primary OCR collaborator.
        fallback: Optional fallback OCR collaborator.
        config: Application configuration.
    """

    def __init__(
        self,
        repository: ReportRepository,
        primary: OCRCollaborator,
        fallback: OCRCollaborator | None = None,
        config: AppConfig | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.repository = repository
        self.orchestrator = PipelineOrchestrator(
            repository, primary, fallback, self.config
        )
        self.auditor = DiagnosticAuditor(
            repository, min_text_length=self.config.pipeline.min_text_length
        )

    def upload(self, document: bytes, file_name: str = "document") -> ReportRecord:
        """Store a new report in ``pending`` status."""
        return self.repository.create_report(file_name=file_name, document=document)

    def run_pipeline(self, report_id: str) -> PipelineOutcome:
        return self.orchestrator.run_pipeline(report_id)

    def reconsolidate(
        self, report_id: str, strategy: ConsolidationStrategy | str
    ) -> ReconsolidationResult:
        return self.orchestrator.reconsolidate(report_id, strategy)

    def audit_report(self, report_id: str) -> AuditReport:
        return self.auditor.audit(report_id)

    def get_report(self, report_id: str) -> ReportRecord:
        report = self.repository.get_report(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        return report

    def get_consolidation(self, report_id: str) -> ConsolidationMetadata | None:
        self.get_report(report_id)
        return self.repository.get_consolidation(report_id)

    def compare_extractions(self, report_id: str) -> ExtractionComparison:
        """Diagnostic side-by-side comparison of a report's attempts."""
        self.get_report(report_id)
        engine = self.orchestrator.consolidation_engine
        return engine.compare(self.repository.list_extraction_results(report_id))

    def summary(self, time_range: str = "day") -> ExtractionSummary:
        """Extraction and consolidation statistics over a time window.

        Args:
            time_range: ``day``, ``week`` or ``month``.
        """
        since = window_start(time_range)
        engine = self.orchestrator.consolidation_engine
        return engine.summarize(
            self.repository.list_all_extraction_results(since),
            self.repository.list_consolidations(since),
        )


def build_pipeline(
    config: AppConfig | None = None, repository: ReportRepository | None = None
) -> CreditReportPipeline:
    """Build a pipeline with Tesseract as primary and the PDF parser as fallback.

    Args:
        config: Application configuration; defaults when omitted.
        repository: Repository to use; a fresh in-memory one when omitted.
    """
    config = config or AppConfig()
    fallback = (
        FallbackPDFParser(min_length=config.pipeline.min_text_length)
        if config.ocr.enable_fallback
        else None
    )
    logger.info(
        "Building pipeline: primary=tesseract fallback=%s",
        fallback.method if fallback else "disabled",
    )
    return CreditReportPipeline(
        repository or InMemoryReportRepository(),
        TesseractOCR(config.ocr),
        fallback,
        config,
    )
