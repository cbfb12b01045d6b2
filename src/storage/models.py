"""Persisted records for reports, extraction attempts, and consolidation."""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


def utcnow() -> datetime:
    return datetime.now(UTC)


class ReportStatus(StrEnum):
    """Lifecycle status of a report and of its consolidation phase."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ConsolidationStrategy(StrEnum):
    """How multiple extraction attempts are reconciled."""

    HIGHEST_CONFIDENCE = "highest_confidence"
    MAJORITY_VOTE = "majority_vote"
    MANUAL_REVIEW = "manual_review"
    SINGLE_SOURCE = "single_source"


@dataclass
class ReportRecord:
    """A credit report tracked through the pipeline."""

    id: str
    file_name: str = "document"
    document: bytes | None = None
    raw_text: str | None = None
    status: ReportStatus = ReportStatus.PENDING
    consolidation_status: ReportStatus = ReportStatus.PENDING
    consolidation_confidence: float | None = None
    primary_extraction_method: str | None = None
    processing_errors: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class RawDocumentText:
    """Text returned by one OCR attempt for a report."""

    report_id: str
    text: str
    source_method: str


@dataclass
class ExtractionResult:
    """One extraction attempt; never mutated once stored."""

    report_id: str
    extraction_method: str
    extracted_text: str
    processing_time_ms: float
    character_count: int
    word_count: int
    confidence_score: float
    has_structured_data: bool
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Conflict:
    """A disagreement between extraction attempts on one field."""

    field: str
    values: list[dict[str, Any]]


@dataclass
class ConsolidationMetadata:
    """The latest consolidation decision for a report (one per report)."""

    report_id: str
    primary_source: str
    consolidation_strategy: ConsolidationStrategy
    confidence_level: float
    field_sources: dict[str, Any]
    conflicts: list[Conflict]
    conflict_count: int
    requires_human_review: bool
    notes: str = ""
    processed_at: datetime = field(default_factory=utcnow, compare=False)
