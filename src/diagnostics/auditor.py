"""Read-only audit that locates where a report's processing stopped.

The audit walks the pipeline's persisted artifacts in the order they are
written and reports the first phase whose artifact is missing or
inconsistent. Nothing is written back to the repository.
"""

from dataclasses import dataclass, field
from typing import Any

from src.extraction.models import CanonicalEntities
from src.storage.models import (
    ConsolidationMetadata,
    ExtractionResult,
    ReportRecord,
    ReportStatus,
)
from src.storage.repository import ReportRepository
from src.utils.logger import get_logger

logger = get_logger(__name__)

DOCUMENT_AVAILABILITY = "Document Availability"
EXTRACTION_ATTEMPTS = "Extraction Attempts"
CANONICAL_ENTITIES = "Canonical Entities"
CONSOLIDATION_METADATA = "Consolidation Metadata"
REPORT_COMPLETION = "Report Completion"

PHASES = (
    DOCUMENT_AVAILABILITY,
    EXTRACTION_ATTEMPTS,
    CANONICAL_ENTITIES,
    CONSOLIDATION_METADATA,
    REPORT_COMPLETION,
)


@dataclass
class PhaseResult:
    """Outcome of one audit phase."""

    phase: str
    success: bool
    details: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class AuditReport:
    """Phases checked for a report, in order, up to the first failure."""

    report_id: str
    phases: list[PhaseResult]
    record_counts: dict[str, int]

    @property
    def failure_point(self) -> str | None:
        for phase in self.phases:
            if not phase.success:
                return phase.phase
        return None

    @property
    def passed(self) -> bool:
        return self.failure_point is None and len(self.phases) == len(PHASES)


@dataclass
class _Snapshot:
    report: ReportRecord | None
    extractions: list[ExtractionResult]
    entities: CanonicalEntities | None
    metadata: ConsolidationMetadata | None


def _with_error(details: str, report: ReportRecord | None) -> str:
    if report is not None and report.processing_errors:
        return f"{details}. Last error: {report.processing_errors}"
    return details


class DiagnosticAuditor:
    """Checks a report's persisted state phase by phase.

    Args:
        repository: Repository to read from.
        min_text_length: Characters an attempt needs to count as usable.
    """

    def __init__(self, repository: ReportRepository, min_text_length: int = 100) -> None:
        self.repository = repository
        self.min_text_length = min_text_length

    def audit(self, report_id: str) -> AuditReport:
        """Audit one report.

        Args:
            report_id: Report to inspect.

        Returns:
            The checked phases (stopping at the first failure) and
            per-table record counts.
        """
        snapshot = _Snapshot(
            report=self.repository.get_report(report_id),
            extractions=self.repository.list_extraction_results(report_id),
            entities=self.repository.get_canonical_entities(report_id),
            metadata=self.repository.get_consolidation(report_id),
        )

        checks = (
            self._check_document,
            self._check_extractions,
            self._check_entities,
            self._check_metadata,
            self._check_completion,
        )
        phases: list[PhaseResult] = []
        for check in checks:
            result = check(snapshot)
            phases.append(result)
            if not result.success:
                break

        audit = AuditReport(
            report_id=report_id,
            phases=phases,
            record_counts=self._record_counts(snapshot),
        )
        if audit.failure_point:
            logger.info("Audit of report %s failed at: %s", report_id, audit.failure_point)
        else:
            logger.info("Audit of report %s passed all phases", report_id)
        return audit

    @staticmethod
    def _record_counts(snapshot: _Snapshot) -> dict[str, int]:
        counts = {
            "reports": int(snapshot.report is not None),
            "extraction_results": len(snapshot.extractions),
            "consolidation_metadata": int(snapshot.metadata is not None),
        }
        if snapshot.entities is not None:
            counts.update(snapshot.entities.counts())
        else:
            counts.update(CanonicalEntities().counts())
        return counts

    def _check_document(self, snapshot: _Snapshot) -> PhaseResult:
        report = snapshot.report
        if report is None:
            return PhaseResult(DOCUMENT_AVAILABILITY, False, "Report record not found")

        data = {
            "file_name": report.file_name,
            "document_bytes": len(report.document or b""),
            "raw_text_length": len(report.raw_text or ""),
            "status": report.status.value,
        }
        if not report.document and not report.raw_text:
            return PhaseResult(
                DOCUMENT_AVAILABILITY,
                False,
                "No document or raw text stored; the document must be re-uploaded",
                data,
            )
        return PhaseResult(
            DOCUMENT_AVAILABILITY,
            True,
            f"Document {report.file_name} available ({data['document_bytes']} bytes)",
            data,
        )

    def _check_extractions(self, snapshot: _Snapshot) -> PhaseResult:
        results = snapshot.extractions
        if not results:
            return PhaseResult(
                EXTRACTION_ATTEMPTS,
                False,
                _with_error("No extraction attempts recorded", snapshot.report),
            )

        data = {
            "attempts": [
                {
                    "method": r.extraction_method,
                    "character_count": r.character_count,
                    "confidence_score": r.confidence_score,
                    "has_structured_data": r.has_structured_data,
                }
                for r in results
            ]
        }
        longest = max(r.character_count for r in results)
        if longest < self.min_text_length:
            details = (
                f"All {len(results)} attempt(s) below {self.min_text_length} "
                f"characters (longest {longest})"
            )
            return PhaseResult(
                EXTRACTION_ATTEMPTS, False, _with_error(details, snapshot.report), data
            )

        structured = sum(1 for r in results if r.has_structured_data)
        return PhaseResult(
            EXTRACTION_ATTEMPTS,
            True,
            f"{len(results)} attempt(s), {structured} with structured data",
            data,
        )

    def _check_entities(self, snapshot: _Snapshot) -> PhaseResult:
        entities = snapshot.entities
        if entities is None or entities.is_empty():
            return PhaseResult(
                CANONICAL_ENTITIES,
                False,
                _with_error("No canonical entities stored", snapshot.report),
            )
        return PhaseResult(
            CANONICAL_ENTITIES,
            True,
            "Canonical entities stored",
            entities.counts(),
        )

    def _check_metadata(self, snapshot: _Snapshot) -> PhaseResult:
        metadata = snapshot.metadata
        if metadata is None:
            return PhaseResult(
                CONSOLIDATION_METADATA,
                False,
                _with_error(
                    "Partially consolidated: canonical entities exist but "
                    "consolidation metadata is missing",
                    snapshot.report,
                ),
            )
        return PhaseResult(
            CONSOLIDATION_METADATA,
            True,
            metadata.notes or "Consolidation metadata stored",
            {
                "strategy": metadata.consolidation_strategy.value,
                "primary_source": metadata.primary_source,
                "confidence_level": metadata.confidence_level,
                "conflict_count": metadata.conflict_count,
                "requires_human_review": metadata.requires_human_review,
            },
        )

    def _check_completion(self, snapshot: _Snapshot) -> PhaseResult:
        report = snapshot.report
        if report is None:
            return PhaseResult(REPORT_COMPLETION, False, "Report record not found")
        data = {
            "status": report.status.value,
            "consolidation_status": report.consolidation_status.value,
        }
        if report.status != ReportStatus.COMPLETED:
            details = (
                f"Partially consolidated: artifacts exist but report status is "
                f"{report.status.value}"
            )
            return PhaseResult(
                REPORT_COMPLETION, False, _with_error(details, report), data
            )
        return PhaseResult(
            REPORT_COMPLETION,
            True,
            f"Report completed via {report.primary_extraction_method}",
            data,
        )
