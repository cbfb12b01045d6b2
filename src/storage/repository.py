"""Persistence collaborator for reports and their derived records.

``ReportRepository`` is the contract the pipeline depends on. The in-memory
implementation guards all tables with one lock and hands out copies, so
callers can never mutate stored rows in place.
"""

import copy
import threading
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Protocol

from src.errors import ReportNotFoundError
from src.extraction.models import CanonicalEntities
from src.utils.logger import get_logger

from .models import ConsolidationMetadata, ExtractionResult, ReportRecord, utcnow

logger = get_logger(__name__)


class ReportRepository(Protocol):
    """Storage operations keyed by report id."""

    def create_report(
        self,
        file_name: str = "document",
        document: bytes | None = None,
        raw_text: str | None = None,
    ) -> ReportRecord: ...

    def get_report(self, report_id: str) -> ReportRecord | None: ...

    def update_report(self, report_id: str, **changes: Any) -> ReportRecord: ...

    def delete_report(self, report_id: str) -> None: ...

    def add_extraction_result(self, result: ExtractionResult) -> ExtractionResult: ...

    def list_extraction_results(self, report_id: str) -> list[ExtractionResult]: ...

    def list_all_extraction_results(
        self, since: datetime | None = None
    ) -> list[ExtractionResult]: ...

    def get_consolidation(self, report_id: str) -> ConsolidationMetadata | None: ...

    def upsert_consolidation(self, metadata: ConsolidationMetadata) -> None: ...

    def list_consolidations(
        self, since: datetime | None = None
    ) -> list[ConsolidationMetadata]: ...

    def replace_canonical_entities(
        self, report_id: str, entities: CanonicalEntities
    ) -> None: ...

    def get_canonical_entities(self, report_id: str) -> CanonicalEntities | None: ...


class InMemoryReportRepository:
    """Thread-safe in-process implementation of ``ReportRepository``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reports: dict[str, ReportRecord] = {}
        self._extractions: dict[str, list[ExtractionResult]] = {}
        self._consolidations: dict[str, ConsolidationMetadata] = {}
        self._entities: dict[str, CanonicalEntities] = {}

    def create_report(
        self,
        file_name: str = "document",
        document: bytes | None = None,
        raw_text: str | None = None,
    ) -> ReportRecord:
        report = ReportRecord(
            id=str(uuid.uuid4()),
            file_name=file_name,
            document=document,
            raw_text=raw_text,
        )
        with self._lock:
            self._reports[report.id] = report
        logger.info("Created report %s (%s)", report.id, file_name)
        return copy.copy(report)

    def get_report(self, report_id: str) -> ReportRecord | None:
        with self._lock:
            report = self._reports.get(report_id)
            return copy.copy(report) if report else None

    def update_report(self, report_id: str, **changes: Any) -> ReportRecord:
        with self._lock:
            report = self._reports.get(report_id)
            if report is None:
                raise ReportNotFoundError(report_id)
            updated = replace(report, updated_at=utcnow(), **changes)
            self._reports[report_id] = updated
            return copy.copy(updated)

    def delete_report(self, report_id: str) -> None:
        """Delete a report and cascade to all of its derived records."""
        with self._lock:
            if self._reports.pop(report_id, None) is None:
                raise ReportNotFoundError(report_id)
            self._extractions.pop(report_id, None)
            self._consolidations.pop(report_id, None)
            self._entities.pop(report_id, None)
        logger.info("Deleted report %s and its derived records", report_id)

    def add_extraction_result(self, result: ExtractionResult) -> ExtractionResult:
        with self._lock:
            if result.report_id not in self._reports:
                raise ReportNotFoundError(result.report_id)
            stored = copy.deepcopy(result)
            self._extractions.setdefault(result.report_id, []).append(stored)
        return copy.deepcopy(stored)

    def list_extraction_results(self, report_id: str) -> list[ExtractionResult]:
        """Extraction attempts for a report in insertion order."""
        with self._lock:
            return copy.deepcopy(self._extractions.get(report_id, []))

    def list_all_extraction_results(
        self, since: datetime | None = None
    ) -> list[ExtractionResult]:
        with self._lock:
            rows = [r for rows in self._extractions.values() for r in rows]
            if since is not None:
                rows = [r for r in rows if r.created_at >= since]
            return copy.deepcopy(rows)

    def get_consolidation(self, report_id: str) -> ConsolidationMetadata | None:
        with self._lock:
            return copy.deepcopy(self._consolidations.get(report_id))

    def upsert_consolidation(self, metadata: ConsolidationMetadata) -> None:
        with self._lock:
            if metadata.report_id not in self._reports:
                raise ReportNotFoundError(metadata.report_id)
            self._consolidations[metadata.report_id] = copy.deepcopy(metadata)

    def list_consolidations(
        self, since: datetime | None = None
    ) -> list[ConsolidationMetadata]:
        with self._lock:
            rows = list(self._consolidations.values())
            if since is not None:
                rows = [m for m in rows if m.processed_at >= since]
            return copy.deepcopy(rows)

    def replace_canonical_entities(
        self, report_id: str, entities: CanonicalEntities
    ) -> None:
        """Swap the whole entity set of a report in one step.

        Readers see either the previous set or the new one, never an empty
        intermediate state.
        """
        with self._lock:
            if report_id not in self._reports:
                raise ReportNotFoundError(report_id)
            self._entities[report_id] = copy.deepcopy(entities)

    def get_canonical_entities(self, report_id: str) -> CanonicalEntities | None:
        with self._lock:
            return copy.deepcopy(self._entities.get(report_id))
