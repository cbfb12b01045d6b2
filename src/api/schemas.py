"""Pydantic request/response schemas for the FastAPI endpoints."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel


class TimeRange(StrEnum):
    """Window for extraction summaries."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class ReportResponse(BaseModel):
    """Response schema for a stored report."""

    id: str
    file_name: str
    status: str
    consolidation_status: str
    consolidation_confidence: float | None = None
    primary_extraction_method: str | None = None
    processing_errors: str | None = None
    created_at: datetime
    updated_at: datetime


class PipelineResponse(BaseModel):
    """Response schema for a pipeline run."""

    report_id: str
    status: str
    confidence: float | None = None
    primary_method: str | None = None
    requires_human_review: bool = False
    error: str | None = None


class ReconsolidationResponse(BaseModel):
    """Response schema for an explicit re-consolidation."""

    report_id: str
    strategy: str
    consolidated_text: str
    confidence: float
    primary_method: str


class ConflictResponse(BaseModel):
    field: str
    values: list[dict[str, Any]]


class ConsolidationResponse(BaseModel):
    """Response schema for a report's consolidation metadata."""

    report_id: str
    primary_source: str
    consolidation_strategy: str
    confidence_level: float
    field_sources: dict[str, Any]
    conflicts: list[ConflictResponse]
    conflict_count: int
    requires_human_review: bool
    notes: str
    processed_at: datetime


class ExtractionAttemptResponse(BaseModel):
    """Response schema for one stored extraction attempt."""

    id: str
    extraction_method: str
    character_count: int
    word_count: int
    confidence_score: float
    has_structured_data: bool
    processing_time_ms: float
    created_at: datetime


class ComparisonResponse(BaseModel):
    """Response schema for the side-by-side attempt comparison."""

    report_id: str
    extractions: list[ExtractionAttemptResponse]
    similarities: list[str]
    differences: list[ConflictResponse]


class PhaseResponse(BaseModel):
    phase: str
    success: bool
    details: str
    data: dict[str, Any] = {}


class AuditResponse(BaseModel):
    """Response schema for a diagnostic audit."""

    report_id: str
    failure_point: str | None = None
    phases: list[PhaseResponse]
    record_counts: dict[str, int]


class MethodStatsResponse(BaseModel):
    method: str
    count: int
    avg_confidence: float


class SummaryResponse(BaseModel):
    """Response schema for aggregate extraction statistics."""

    time_range: str
    total_extractions: int
    method_breakdown: list[MethodStatsResponse]
    total_consolidations: int
    avg_consolidation_confidence: float
    requires_review: int


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
