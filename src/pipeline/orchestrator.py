"""Drives one report through extraction, consolidation, and publication.

Status moves ``pending -> processing -> completed | failed``; the
consolidation phase carries its own status with the same values. Every
failure is written to the report together with a truncated message so the
diagnostic auditor can explain it later without re-running anything.
"""

import time
from dataclasses import dataclass, field
from typing import Any

from src.consolidation.engine import ConsolidationEngine, ConsolidationOutcome
from src.errors import (
    CreditPipelineError,
    InsufficientTextError,
    MissingDocumentError,
    NoStructuredDataError,
    OCRError,
    ReportNotFoundError,
)
from src.extraction.confidence import ConfidenceScorer, has_structured_data
from src.extraction.entity_extractor import EntityExtractor
from src.extraction.models import CanonicalEntities
from src.ocr.base import OCRCollaborator, extract_with_timeout
from src.storage.models import (
    ConsolidationStrategy,
    ExtractionResult,
    RawDocumentText,
    ReportRecord,
    ReportStatus,
)
from src.storage.repository import ReportRepository
from src.text.normalizer import TextNormalizer
from src.text.quality import QualityScorer
from src.utils.config import AppConfig
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class PipelineOutcome:
    """Final state of one pipeline run."""

    report_id: str
    status: ReportStatus
    confidence: float | None = None
    primary_method: str | None = None
    requires_human_review: bool = False
    error: str | None = None


@dataclass
class ReconsolidationResult:
    consolidated_text: str
    confidence: float
    primary_method: str


@dataclass
class _RunState:
    """Per-run scratch data; never shared between runs."""

    attempts: list[dict[str, Any]] = field(default_factory=list)
    results: list[ExtractionResult] = field(default_factory=list)
    entities: dict[str, CanonicalEntities] = field(default_factory=dict)


class PipelineOrchestrator:
    """Runs the full extraction and consolidation sequence for a report.

    Args:
        repository: Persistence collaborator.
        primary: Primary OCR collaborator.
        fallback: Optional degraded collaborator tried once when the primary
            attempt fails, times out, or returns too little text.
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
        self.primary = primary
        self.fallback = fallback if self.config.ocr.enable_fallback else None
        self.normalizer = TextNormalizer()
        self.quality_scorer = QualityScorer(
            min_length=self.config.quality.min_length,
            threshold=self.config.quality.threshold,
        )
        self.entity_extractor = EntityExtractor(
            parallel=self.config.pipeline.parallel_extractors
        )
        self.confidence_scorer = ConfidenceScorer(self.config.confidence)
        self.consolidation_engine = ConsolidationEngine(self.config.consolidation)

    def run_pipeline(self, report_id: str) -> PipelineOutcome:
        """Process a report from its stored document to canonical entities.

        Re-running a completed or failed report is allowed: previous
        extraction results stay as history while canonical entities and
        consolidation metadata are replaced.

        Args:
            report_id: Report to process.

        Returns:
            Final status and, on success, the canonical confidence.

        Raises:
            ReportNotFoundError: If the report does not exist.
        """
        report = self.repository.get_report(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)

        self.repository.update_report(
            report_id,
            status=ReportStatus.PROCESSING,
            consolidation_status=ReportStatus.PROCESSING,
            processing_errors=None,
        )
        logger.info("Pipeline started for report %s (%s)", report_id, report.file_name)
        started = time.perf_counter()

        try:
            state = self._extract(report)
            outcome = self.consolidation_engine.consolidate(
                self.repository.list_extraction_results(report_id),
                previous=self.repository.get_consolidation(report_id),
                explicit=False,
            )
            entities = self._entities_for(outcome, state)
            if entities.is_empty():
                raise NoStructuredDataError(outcome.primary_result.extraction_method)
            self._publish(report_id, outcome, entities)
        except Exception as exc:
            return self._fail(report_id, exc, started)

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Pipeline completed for report %s in %.0fms: primary=%s confidence=%.2f",
            report_id,
            elapsed_ms,
            outcome.metadata.primary_source,
            outcome.metadata.confidence_level,
        )
        return PipelineOutcome(
            report_id=report_id,
            status=ReportStatus.COMPLETED,
            confidence=outcome.metadata.confidence_level,
            primary_method=outcome.metadata.primary_source,
            requires_human_review=outcome.metadata.requires_human_review,
        )

    def reconsolidate(
        self, report_id: str, strategy: ConsolidationStrategy | str
    ) -> ReconsolidationResult:
        """Explicitly re-run consolidation over the stored attempts.

        The report status is only touched once the stored attempts satisfy
        the completion rules. A failure while publishing marks the report
        failed before the error propagates.

        Args:
            report_id: Report to re-consolidate.
            strategy: Strategy requested by the operator.

        Raises:
            ReportNotFoundError: If the report does not exist.
            NoExtractionResultsError: If the report has no attempts.
            UnknownStrategyError: If the strategy is not recognised.
            InsufficientTextError: If no stored attempt is long enough.
            NoStructuredDataError: If the canonical text yields no entities.
        """
        if self.repository.get_report(report_id) is None:
            raise ReportNotFoundError(report_id)

        results = self.repository.list_extraction_results(report_id)
        outcome = self.consolidation_engine.consolidate(
            results,
            strategy=strategy,
            previous=self.repository.get_consolidation(report_id),
            explicit=True,
            report_id=report_id,
        )

        minimum = self.config.pipeline.min_text_length
        longest = max(r.character_count for r in results)
        if longest < minimum:
            methods = list(dict.fromkeys(r.extraction_method for r in results))
            raise InsufficientTextError(longest, minimum, methods)

        entities = self._entities_for(outcome, _RunState())
        if entities.is_empty():
            raise NoStructuredDataError(outcome.primary_result.extraction_method)

        self.repository.update_report(
            report_id,
            status=ReportStatus.PROCESSING,
            consolidation_status=ReportStatus.PROCESSING,
        )
        started = time.perf_counter()
        try:
            self._publish(report_id, outcome, entities)
        except Exception as exc:
            self._fail(report_id, exc, started)
            raise

        return ReconsolidationResult(
            consolidated_text=outcome.consolidated_text,
            confidence=outcome.metadata.confidence_level,
            primary_method=outcome.metadata.primary_source,
        )

    def _extract(self, report: ReportRecord) -> _RunState:
        """Run the primary attempt and, when needed, one fallback attempt."""
        if not report.document:
            raise MissingDocumentError(report.id)

        state = _RunState()
        minimum = self.config.pipeline.min_text_length

        primary = self._attempt(self.primary, report, state)
        if self.fallback is not None and (
            primary is None or primary.character_count < minimum
        ):
            logger.info(
                "Report %s: trying fallback method %s", report.id, self.fallback.method
            )
            self._attempt(self.fallback, report, state)

        longest = max((r.character_count for r in state.results), default=0)
        if longest < minimum:
            raise InsufficientTextError(
                longest, minimum, [a["method"] for a in state.attempts]
            )
        return state

    def _attempt(
        self, collaborator: OCRCollaborator, report: ReportRecord, state: _RunState
    ) -> ExtractionResult | None:
        started = time.perf_counter()
        try:
            output = extract_with_timeout(
                collaborator, report.document or b"", self.config.ocr.timeout_seconds
            )
        except OCRError as exc:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.warning(
                "Report %s: method %s failed after %.0fms: %s",
                report.id,
                collaborator.method,
                elapsed_ms,
                exc,
            )
            state.attempts.append(
                {"method": collaborator.method, "ok": False, "error": str(exc)}
            )
            return None

        elapsed_ms = (time.perf_counter() - started) * 1000
        raw = RawDocumentText(
            report_id=report.id, text=output.text, source_method=output.method
        )
        state.attempts.append(
            {"method": raw.source_method, "ok": True, "characters": len(raw.text)}
        )
        result = self._record(raw, elapsed_ms, state)
        logger.info(
            "Report %s: method %s produced %d characters in %.0fms (confidence %.2f)",
            report.id,
            raw.source_method,
            result.character_count,
            elapsed_ms,
            result.confidence_score,
        )
        return result

    def _record(
        self, raw: RawDocumentText, elapsed_ms: float, state: _RunState
    ) -> ExtractionResult:
        """Score one attempt's text and persist it as an extraction result."""
        normalized = self.normalizer.normalize(raw.text)
        quality = self.quality_scorer.score(normalized)
        low_quality = self.quality_scorer.is_low_quality(quality)
        if low_quality:
            logger.warning(
                "Report %s: %s text quality %d is below threshold %d",
                raw.report_id,
                raw.source_method,
                quality,
                self.quality_scorer.threshold,
            )
        entities = self.entity_extractor.extract(normalized)

        result = ExtractionResult(
            report_id=raw.report_id,
            extraction_method=raw.source_method,
            extracted_text=raw.text,
            processing_time_ms=round(elapsed_ms, 2),
            character_count=len(raw.text),
            word_count=len(raw.text.split()),
            confidence_score=self.confidence_scorer.score(raw.text, raw.source_method),
            has_structured_data=has_structured_data(raw.text),
            metadata={
                "quality_score": quality,
                "low_quality": low_quality,
                "normalized_length": len(normalized),
                "entity_counts": entities.counts(),
                "attempts": [dict(a) for a in state.attempts],
            },
        )
        stored = self.repository.add_extraction_result(result)
        state.results.append(stored)
        state.entities[stored.id] = entities
        return stored

    def _entities_for(
        self, outcome: ConsolidationOutcome, state: _RunState
    ) -> CanonicalEntities:
        cached = state.entities.get(outcome.primary_result.id)
        if cached is not None and (
            outcome.consolidated_text == outcome.primary_result.extracted_text
        ):
            return cached
        return self.entity_extractor.extract(
            self.normalizer.normalize(outcome.consolidated_text)
        )

    def _publish(
        self,
        report_id: str,
        outcome: ConsolidationOutcome,
        entities: CanonicalEntities,
    ) -> None:
        """Write the canonical result: entities, then metadata, then status.

        A failure between writes leaves the report out of ``completed``,
        which the auditor reports as a partial consolidation.
        """
        self.repository.replace_canonical_entities(report_id, entities)
        self.repository.upsert_consolidation(outcome.metadata)
        self.repository.update_report(
            report_id,
            raw_text=outcome.consolidated_text,
            status=ReportStatus.COMPLETED,
            consolidation_status=ReportStatus.COMPLETED,
            consolidation_confidence=outcome.metadata.confidence_level,
            primary_extraction_method=outcome.metadata.primary_source,
            processing_errors=None,
        )

    def _fail(self, report_id: str, exc: Exception, started: float) -> PipelineOutcome:
        elapsed_ms = (time.perf_counter() - started) * 1000
        message = str(exc)[: self.config.pipeline.max_error_length]
        if isinstance(exc, CreditPipelineError):
            logger.error(
                "Pipeline failed for report %s after %.0fms: %s",
                report_id,
                elapsed_ms,
                message,
            )
        else:
            logger.exception(
                "Unexpected pipeline error for report %s after %.0fms",
                report_id,
                elapsed_ms,
            )

        try:
            self.repository.update_report(
                report_id,
                status=ReportStatus.FAILED,
                consolidation_status=ReportStatus.FAILED,
                processing_errors=message,
            )
        except ReportNotFoundError:
            logger.error(
                "Report %s disappeared before its failure was recorded", report_id
            )

        return PipelineOutcome(
            report_id=report_id, status=ReportStatus.FAILED, error=message
        )
