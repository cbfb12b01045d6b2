"""Tests for the read-only diagnostic auditor."""

from collections.abc import Callable

from src.diagnostics.auditor import (
    CANONICAL_ENTITIES,
    CONSOLIDATION_METADATA,
    DOCUMENT_AVAILABILITY,
    EXTRACTION_ATTEMPTS,
    PHASES,
    REPORT_COMPLETION,
    DiagnosticAuditor,
)
from src.extraction.models import CanonicalEntities, CreditAccount
from src.storage.models import (
    ConsolidationMetadata,
    ConsolidationStrategy,
    ExtractionResult,
    ReportStatus,
)
from src.storage.repository import InMemoryReportRepository


def _attempt(report_id: str, text: str) -> ExtractionResult:
    return ExtractionResult(
        report_id=report_id,
        extraction_method="tesseract",
        extracted_text=text,
        processing_time_ms=12.0,
        character_count=len(text),
        word_count=len(text.split()),
        confidence_score=0.9,
        has_structured_data=False,
    )


class TestDiagnosticAuditor:
    """Tests for phase-by-phase auditing."""

    def setup_method(self) -> None:
        self.repo = InMemoryReportRepository()
        self.auditor = DiagnosticAuditor(self.repo)

    def test_unknown_report(self) -> None:
        audit = self.auditor.audit("missing")
        assert audit.failure_point == DOCUMENT_AVAILABILITY
        assert len(audit.phases) == 1
        assert audit.record_counts["reports"] == 0

    def test_report_without_document(self) -> None:
        report = self.repo.create_report("lost.pdf")
        audit = self.auditor.audit(report.id)
        assert audit.failure_point == DOCUMENT_AVAILABILITY
        assert "re-uploaded" in audit.phases[0].details

    def test_unprocessed_report(self) -> None:
        report = self.repo.create_report("scan.pdf", b"%PDF-1.4")
        audit = self.auditor.audit(report.id)
        assert [p.phase for p in audit.phases] == [
            DOCUMENT_AVAILABILITY,
            EXTRACTION_ATTEMPTS,
        ]
        assert audit.phases[0].success is True
        assert audit.phases[0].data["document_bytes"] == 8
        assert audit.failure_point == EXTRACTION_ATTEMPTS

    def test_short_attempts_reported_with_error(self) -> None:
        report = self.repo.create_report("scan.pdf", b"%PDF-1.4")
        self.repo.add_extraction_result(_attempt(report.id, "x" * 40))
        self.repo.update_report(
            report.id,
            status=ReportStatus.FAILED,
            processing_errors="Insufficient text extracted: 40 characters",
        )

        audit = self.auditor.audit(report.id)

        assert audit.failure_point == EXTRACTION_ATTEMPTS
        details = audit.phases[-1].details
        assert "below 100 characters (longest 40)" in details
        assert "Last error: Insufficient text extracted" in details
        assert audit.record_counts["extraction_results"] == 1

    def test_missing_entities(self) -> None:
        report = self.repo.create_report("scan.pdf", b"%PDF-1.4")
        self.repo.add_extraction_result(_attempt(report.id, "x" * 150))
        audit = self.auditor.audit(report.id)
        assert audit.failure_point == CANONICAL_ENTITIES

    def test_entities_without_metadata_is_partial(self) -> None:
        report = self.repo.create_report("scan.pdf", b"%PDF-1.4")
        self.repo.add_extraction_result(_attempt(report.id, "x" * 150))
        self.repo.replace_canonical_entities(
            report.id, CanonicalEntities(accounts=[CreditAccount("ABC BANK")])
        )

        audit = self.auditor.audit(report.id)

        assert audit.failure_point == CONSOLIDATION_METADATA
        assert audit.phases[-1].details.startswith("Partially consolidated")
        assert audit.record_counts["credit_accounts"] == 1
        assert audit.record_counts["consolidation_metadata"] == 0

    def test_artifacts_without_completion_is_partial(self) -> None:
        report = self.repo.create_report("scan.pdf", b"%PDF-1.4")
        self.repo.add_extraction_result(_attempt(report.id, "x" * 150))
        self.repo.replace_canonical_entities(
            report.id, CanonicalEntities(accounts=[CreditAccount("ABC BANK")])
        )
        self.repo.upsert_consolidation(
            ConsolidationMetadata(
                report_id=report.id,
                primary_source="tesseract",
                consolidation_strategy=ConsolidationStrategy.SINGLE_SOURCE,
                confidence_level=0.9,
                field_sources={},
                conflicts=[],
                conflict_count=0,
                requires_human_review=False,
            )
        )
        self.repo.update_report(report.id, status=ReportStatus.PROCESSING)

        audit = self.auditor.audit(report.id)

        assert audit.failure_point == REPORT_COMPLETION
        assert "report status is processing" in audit.phases[-1].details
        assert audit.phases[3].data["strategy"] == "single_source"

    def test_completed_pipeline_passes(
        self, make_pipeline: Callable, make_ocr: Callable, sample_report_text: str
    ) -> None:
        pipeline = make_pipeline(make_ocr(sample_report_text))
        report = pipeline.upload(b"%PDF-1.4", "report.pdf")
        pipeline.run_pipeline(report.id)

        audit = pipeline.audit_report(report.id)

        assert audit.failure_point is None
        assert audit.passed is True
        assert [p.phase for p in audit.phases] == list(PHASES)
        assert audit.record_counts == {
            "reports": 1,
            "extraction_results": 1,
            "consolidation_metadata": 1,
            "personal_information": 1,
            "credit_accounts": 2,
            "credit_inquiries": 2,
            "negative_items": 1,
        }

    def test_audit_is_read_only(
        self, make_pipeline: Callable, make_ocr: Callable, short_text: str
    ) -> None:
        pipeline = make_pipeline(make_ocr(short_text))
        report = pipeline.upload(b"%PDF-1.4")
        pipeline.run_pipeline(report.id)
        before = pipeline.get_report(report.id)

        pipeline.audit_report(report.id)
        pipeline.audit_report(report.id)

        assert pipeline.get_report(report.id) == before
        assert len(pipeline.repository.list_extraction_results(report.id)) == 1
