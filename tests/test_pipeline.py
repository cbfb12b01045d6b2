"""Tests for the pipeline orchestrator and the service facade."""

from collections.abc import Callable

import pytest

from src.errors import (
    InsufficientTextError,
    NoExtractionResultsError,
    NoStructuredDataError,
    OCRError,
    ReportNotFoundError,
    UnknownStrategyError,
)
from src.pipeline.service import CreditReportPipeline, build_pipeline
from src.storage.models import ConsolidationStrategy, ReportStatus
from src.storage.repository import InMemoryReportRepository
from src.utils.config import AppConfig

UNSTRUCTURED = "lorem ipsum dolor sit amet consectetur " * 4


class _FailingUpsertRepository(InMemoryReportRepository):
    """Repository whose consolidation write always fails."""

    def __init__(self, message: str = "database unavailable") -> None:
        super().__init__()
        self.message = message
        self.failing = True

    def upsert_consolidation(self, metadata) -> None:
        if self.failing:
            raise RuntimeError(self.message)
        super().upsert_consolidation(metadata)


class TestRunPipeline:
    """End-to-end runs with fake OCR collaborators."""

    def test_successful_run(
        self, make_pipeline: Callable, make_ocr: Callable, sample_report_text: str
    ) -> None:
        primary = make_ocr(sample_report_text)
        fallback = make_ocr(sample_report_text, method="fallback")
        pipeline: CreditReportPipeline = make_pipeline(primary, fallback)
        report = pipeline.upload(b"%PDF-1.4", "report.pdf")

        outcome = pipeline.run_pipeline(report.id)

        assert outcome.status == ReportStatus.COMPLETED
        assert outcome.confidence == 0.99
        assert outcome.primary_method == "tesseract"
        assert outcome.requires_human_review is False
        assert outcome.error is None
        assert fallback.calls == 0

        stored = pipeline.get_report(report.id)
        assert stored.status == ReportStatus.COMPLETED
        assert stored.consolidation_status == ReportStatus.COMPLETED
        assert stored.raw_text == sample_report_text
        assert stored.consolidation_confidence == 0.99
        assert stored.primary_extraction_method == "tesseract"

        entities = pipeline.repository.get_canonical_entities(report.id)
        assert entities.counts() == {
            "personal_information": 1,
            "credit_accounts": 2,
            "credit_inquiries": 2,
            "negative_items": 1,
        }
        metadata = pipeline.get_consolidation(report.id)
        assert metadata.consolidation_strategy == ConsolidationStrategy.SINGLE_SOURCE
        assert metadata.conflict_count == 0

    def test_extraction_result_recorded(
        self, make_pipeline: Callable, make_ocr: Callable, sample_report_text: str
    ) -> None:
        pipeline = make_pipeline(make_ocr(sample_report_text))
        report = pipeline.upload(b"%PDF-1.4")
        pipeline.run_pipeline(report.id)

        [result] = pipeline.repository.list_extraction_results(report.id)
        assert result.extraction_method == "tesseract"
        assert result.character_count == len(sample_report_text)
        assert result.word_count == len(sample_report_text.split())
        assert result.has_structured_data is True
        assert result.processing_time_ms >= 0
        assert result.metadata["low_quality"] is False
        assert result.metadata["entity_counts"]["credit_accounts"] == 2
        assert result.metadata["attempts"] == [
            {"method": "tesseract", "ok": True, "characters": len(sample_report_text)}
        ]

    def test_short_text_fails_with_diagnostic(
        self, make_pipeline: Callable, make_ocr: Callable, short_text: str
    ) -> None:
        pipeline = make_pipeline(make_ocr(short_text))
        report = pipeline.upload(b"%PDF-1.4")

        outcome = pipeline.run_pipeline(report.id)

        assert outcome.status == ReportStatus.FAILED
        assert outcome.error.startswith("Insufficient text extracted: 40 characters")
        stored = pipeline.get_report(report.id)
        assert stored.status == ReportStatus.FAILED
        assert stored.consolidation_status == ReportStatus.FAILED
        assert stored.processing_errors == outcome.error

        results = pipeline.repository.list_extraction_results(report.id)
        assert [r.character_count for r in results] == [40]
        assert not any(r.has_structured_data for r in results)
        assert pipeline.repository.get_canonical_entities(report.id) is None
        assert pipeline.get_consolidation(report.id) is None

    def test_short_text_with_failing_fallback(
        self, make_pipeline: Callable, make_ocr: Callable, short_text: str
    ) -> None:
        fallback = make_ocr(method="fallback", error=OCRError("image-based document"))
        pipeline = make_pipeline(make_ocr(short_text), fallback)
        report = pipeline.upload(b"%PDF-1.4")

        outcome = pipeline.run_pipeline(report.id)

        assert outcome.status == ReportStatus.FAILED
        assert fallback.calls == 1
        assert "methods tried: tesseract, fallback" in outcome.error
        assert len(pipeline.repository.list_extraction_results(report.id)) == 1

    def test_primary_error_uses_fallback(
        self, make_pipeline: Callable, make_ocr: Callable, sample_report_text: str
    ) -> None:
        primary = make_ocr(error=OCRError("tesseract crashed"))
        pipeline = make_pipeline(primary, make_ocr(sample_report_text, method="fallback"))
        report = pipeline.upload(b"%PDF-1.4")

        outcome = pipeline.run_pipeline(report.id)

        assert outcome.status == ReportStatus.COMPLETED
        assert outcome.primary_method == "fallback"
        assert outcome.confidence < 0.86
        assert outcome.requires_human_review is (outcome.confidence < 0.7)
        [result] = pipeline.repository.list_extraction_results(report.id)
        assert result.metadata["attempts"][0] == {
            "method": "tesseract",
            "ok": False,
            "error": "tesseract crashed",
        }

    def test_primary_timeout_uses_fallback(
        self,
        repository: InMemoryReportRepository,
        make_ocr: Callable,
        sample_report_text: str,
    ) -> None:
        config = AppConfig()
        config.ocr.timeout_seconds = 0.05
        primary = make_ocr(sample_report_text, delay=0.5)
        fallback = make_ocr(sample_report_text, method="fallback")
        pipeline = CreditReportPipeline(repository, primary, fallback, config)
        report = pipeline.upload(b"%PDF-1.4")

        outcome = pipeline.run_pipeline(report.id)

        assert outcome.status == ReportStatus.COMPLETED
        assert outcome.primary_method == "fallback"
        [result] = repository.list_extraction_results(report.id)
        assert "timed out" in result.metadata["attempts"][0]["error"]

    def test_short_primary_and_fallback_conflict(
        self,
        make_pipeline: Callable,
        make_ocr: Callable,
        short_text: str,
        sample_report_text: str,
    ) -> None:
        pipeline = make_pipeline(
            make_ocr(short_text), make_ocr(sample_report_text, method="fallback")
        )
        report = pipeline.upload(b"%PDF-1.4")

        outcome = pipeline.run_pipeline(report.id)

        assert outcome.status == ReportStatus.COMPLETED
        assert outcome.primary_method == "fallback"
        metadata = pipeline.get_consolidation(report.id)
        assert metadata.consolidation_strategy == ConsolidationStrategy.HIGHEST_CONFIDENCE
        assert metadata.conflict_count == 1
        assert metadata.conflicts[0].field == "Text Length"

    def test_disabled_fallback_never_called(
        self, repository: InMemoryReportRepository, make_ocr: Callable, short_text: str
    ) -> None:
        config = AppConfig()
        config.ocr.enable_fallback = False
        fallback = make_ocr(short_text, method="fallback")
        pipeline = CreditReportPipeline(repository, make_ocr(short_text), fallback, config)
        report = pipeline.upload(b"%PDF-1.4")

        assert pipeline.run_pipeline(report.id).status == ReportStatus.FAILED
        assert fallback.calls == 0

    def test_no_structured_data(self, make_pipeline: Callable, make_ocr: Callable) -> None:
        pipeline = make_pipeline(make_ocr(UNSTRUCTURED))
        report = pipeline.upload(b"%PDF-1.4")

        outcome = pipeline.run_pipeline(report.id)

        assert outcome.status == ReportStatus.FAILED
        assert "No structured fields" in outcome.error
        assert pipeline.repository.get_canonical_entities(report.id) is None

    def test_missing_report(self, make_pipeline: Callable, make_ocr: Callable) -> None:
        pipeline = make_pipeline(make_ocr("unused"))
        with pytest.raises(ReportNotFoundError):
            pipeline.run_pipeline("missing")

    def test_missing_document(
        self, make_pipeline: Callable, make_ocr: Callable, sample_report_text: str
    ) -> None:
        primary = make_ocr(sample_report_text)
        pipeline = make_pipeline(primary)
        report = pipeline.repository.create_report("lost.pdf", document=None)

        outcome = pipeline.run_pipeline(report.id)

        assert outcome.status == ReportStatus.FAILED
        assert "No source document" in outcome.error
        assert primary.calls == 0

    def test_rerun_replaces_entities(
        self, make_pipeline: Callable, make_ocr: Callable, sample_report_text: str
    ) -> None:
        pipeline = make_pipeline(make_ocr(sample_report_text))
        report = pipeline.upload(b"%PDF-1.4")

        pipeline.run_pipeline(report.id)
        first = pipeline.get_consolidation(report.id)
        pipeline.run_pipeline(report.id)

        assert len(pipeline.repository.list_extraction_results(report.id)) == 2
        entities = pipeline.repository.get_canonical_entities(report.id)
        assert len(entities.accounts) == 2
        assert len(pipeline.repository.list_consolidations()) == 1
        assert pipeline.get_consolidation(report.id).primary_source == first.primary_source

    def test_rerun_after_failure_clears_error(
        self, make_pipeline: Callable, make_ocr: Callable, sample_report_text: str
    ) -> None:
        primary = make_ocr(sample_report_text, error=OCRError("scanner offline"))
        pipeline = make_pipeline(primary)
        report = pipeline.upload(b"%PDF-1.4")
        assert pipeline.run_pipeline(report.id).status == ReportStatus.FAILED
        assert pipeline.get_report(report.id).processing_errors is not None

        primary.error = None
        assert pipeline.run_pipeline(report.id).status == ReportStatus.COMPLETED
        assert pipeline.get_report(report.id).processing_errors is None

    def test_parallel_extractors(
        self, repository: InMemoryReportRepository, make_ocr: Callable, sample_report_text: str
    ) -> None:
        config = AppConfig()
        config.pipeline.parallel_extractors = True
        pipeline = CreditReportPipeline(repository, make_ocr(sample_report_text), None, config)
        report = pipeline.upload(b"%PDF-1.4")

        assert pipeline.run_pipeline(report.id).status == ReportStatus.COMPLETED
        assert len(repository.get_canonical_entities(report.id).inquiries) == 2

    def test_failed_metadata_write_leaves_partial_state(
        self, make_ocr: Callable, sample_report_text: str
    ) -> None:
        repository = _FailingUpsertRepository()
        pipeline = CreditReportPipeline(repository, make_ocr(sample_report_text))
        report = pipeline.upload(b"%PDF-1.4")

        outcome = pipeline.run_pipeline(report.id)

        assert outcome.status == ReportStatus.FAILED
        assert outcome.error == "database unavailable"
        assert repository.get_canonical_entities(report.id) is not None
        assert repository.get_consolidation(report.id) is None

    def test_error_message_truncated(
        self, make_ocr: Callable, sample_report_text: str
    ) -> None:
        repository = _FailingUpsertRepository("x" * 2000)
        pipeline = CreditReportPipeline(repository, make_ocr(sample_report_text))
        report = pipeline.upload(b"%PDF-1.4")

        outcome = pipeline.run_pipeline(report.id)

        assert len(outcome.error) == 500
        assert len(repository.get_report(report.id).processing_errors) == 500


class TestReconsolidate:
    """Tests for explicit re-consolidation."""

    @pytest.fixture
    def processed(
        self,
        make_pipeline: Callable,
        make_ocr: Callable,
        short_text: str,
        sample_report_text: str,
    ) -> tuple[CreditReportPipeline, str]:
        pipeline = make_pipeline(
            make_ocr(short_text), make_ocr(sample_report_text, method="fallback")
        )
        report = pipeline.upload(b"%PDF-1.4")
        pipeline.run_pipeline(report.id)
        return pipeline, report.id

    def test_manual_review(self, processed: tuple[CreditReportPipeline, str]) -> None:
        pipeline, report_id = processed
        result = pipeline.reconsolidate(report_id, "manual_review")

        assert result.confidence == 0.5
        assert result.primary_method == "fallback"
        metadata = pipeline.get_consolidation(report_id)
        assert metadata.requires_human_review is True
        assert metadata.notes.startswith("Re-consolidated")
        assert pipeline.get_report(report_id).consolidation_confidence == 0.5

    def test_majority_vote(self, processed: tuple[CreditReportPipeline, str]) -> None:
        pipeline, report_id = processed
        result = pipeline.reconsolidate(report_id, ConsolidationStrategy.MAJORITY_VOTE)

        # two attempts: the longer one is the median
        assert result.primary_method == "fallback"
        entities = pipeline.repository.get_canonical_entities(report_id)
        assert len(entities.accounts) == 2

    def test_automated_run_keeps_review_flag(
        self, processed: tuple[CreditReportPipeline, str]
    ) -> None:
        pipeline, report_id = processed
        pipeline.reconsolidate(report_id, "manual_review")
        pipeline.run_pipeline(report_id)
        assert pipeline.get_consolidation(report_id).requires_human_review is True

    def test_unknown_strategy(self, processed: tuple[CreditReportPipeline, str]) -> None:
        pipeline, report_id = processed
        with pytest.raises(UnknownStrategyError):
            pipeline.reconsolidate(report_id, "coin_flip")

    def test_no_results(self, make_pipeline: Callable, make_ocr: Callable) -> None:
        pipeline = make_pipeline(make_ocr("unused"))
        report = pipeline.upload(b"%PDF-1.4")
        with pytest.raises(NoExtractionResultsError):
            pipeline.reconsolidate(report.id, "highest_confidence")

    def test_missing_report(self, make_pipeline: Callable, make_ocr: Callable) -> None:
        pipeline = make_pipeline(make_ocr("unused"))
        with pytest.raises(ReportNotFoundError):
            pipeline.reconsolidate("missing", "highest_confidence")

    def test_failed_short_report_stays_failed(
        self, make_pipeline: Callable, make_ocr: Callable, short_text: str
    ) -> None:
        pipeline = make_pipeline(make_ocr(short_text))
        report = pipeline.upload(b"%PDF-1.4")
        pipeline.run_pipeline(report.id)

        with pytest.raises(InsufficientTextError):
            pipeline.reconsolidate(report.id, "highest_confidence")

        stored = pipeline.get_report(report.id)
        assert stored.status == ReportStatus.FAILED
        assert stored.processing_errors.startswith("Insufficient text extracted")
        assert pipeline.get_consolidation(report.id) is None
        assert pipeline.repository.get_canonical_entities(report.id) is None
        assert pipeline.audit_report(report.id).failure_point == "Extraction Attempts"

    def test_unstructured_report_stays_failed(
        self, make_pipeline: Callable, make_ocr: Callable
    ) -> None:
        pipeline = make_pipeline(make_ocr(UNSTRUCTURED))
        report = pipeline.upload(b"%PDF-1.4")
        pipeline.run_pipeline(report.id)

        with pytest.raises(NoStructuredDataError):
            pipeline.reconsolidate(report.id, "manual_review")

        assert pipeline.get_report(report.id).status == ReportStatus.FAILED
        assert pipeline.get_consolidation(report.id) is None

    def test_publish_clears_previous_error(
        self, make_ocr: Callable, sample_report_text: str
    ) -> None:
        repository = _FailingUpsertRepository()
        pipeline = CreditReportPipeline(repository, make_ocr(sample_report_text))
        report = pipeline.upload(b"%PDF-1.4")
        pipeline.run_pipeline(report.id)
        repository.failing = False

        pipeline.reconsolidate(report.id, "highest_confidence")

        stored = pipeline.get_report(report.id)
        assert stored.status == ReportStatus.COMPLETED
        assert stored.consolidation_status == ReportStatus.COMPLETED
        assert stored.processing_errors is None

    def test_failed_metadata_write_is_not_reported_completed(
        self, make_ocr: Callable, sample_report_text: str
    ) -> None:
        repository = _FailingUpsertRepository()
        repository.failing = False
        pipeline = CreditReportPipeline(repository, make_ocr(sample_report_text))
        report = pipeline.upload(b"%PDF-1.4")
        pipeline.run_pipeline(report.id)
        repository.failing = True

        with pytest.raises(RuntimeError, match="database unavailable"):
            pipeline.reconsolidate(report.id, "manual_review")

        stored = pipeline.get_report(report.id)
        assert stored.status == ReportStatus.FAILED
        assert stored.consolidation_status == ReportStatus.FAILED
        assert stored.processing_errors == "database unavailable"
        metadata = pipeline.get_consolidation(report.id)
        assert metadata.consolidation_strategy == ConsolidationStrategy.SINGLE_SOURCE
        assert pipeline.audit_report(report.id).failure_point == "Report Completion"


class TestServiceQueries:
    """Tests for the comparison and summary helpers."""

    def test_compare_extractions(
        self,
        make_pipeline: Callable,
        make_ocr: Callable,
        short_text: str,
        sample_report_text: str,
    ) -> None:
        pipeline = make_pipeline(
            make_ocr(short_text), make_ocr(sample_report_text, method="fallback")
        )
        report = pipeline.upload(b"%PDF-1.4")
        pipeline.run_pipeline(report.id)

        comparison = pipeline.compare_extractions(report.id)
        assert len(comparison.results) == 2
        assert "All extractions contain: credit report" in comparison.similarities
        assert len(comparison.differences) == 1

    def test_compare_unknown_report(self, make_pipeline: Callable, make_ocr: Callable) -> None:
        with pytest.raises(ReportNotFoundError):
            make_pipeline(make_ocr("unused")).compare_extractions("missing")

    def test_summary(
        self, make_pipeline: Callable, make_ocr: Callable, sample_report_text: str
    ) -> None:
        pipeline = make_pipeline(make_ocr(sample_report_text))
        for _ in range(2):
            pipeline.run_pipeline(pipeline.upload(b"%PDF-1.4").id)

        summary = pipeline.summary("week")
        assert summary.total_extractions == 2
        assert summary.method_breakdown[0].method == "tesseract"
        assert summary.total_consolidations == 2
        assert summary.requires_review == 0


class TestBuildPipeline:
    def test_default_collaborators(self) -> None:
        pipeline = build_pipeline(AppConfig())
        assert pipeline.orchestrator.primary.method == "tesseract"
        assert pipeline.orchestrator.fallback.method == "fallback"

    def test_fallback_disabled(self) -> None:
        config = AppConfig()
        config.ocr.enable_fallback = False
        assert build_pipeline(config).orchestrator.fallback is None
