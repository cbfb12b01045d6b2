"""FastAPI application for the credit report consolidation API.

Provides REST endpoints to upload reports, run the extraction pipeline,
re-consolidate stored attempts, audit processing, and read statistics.
"""

import os
import shutil
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from src.errors import (
    ConsolidationError,
    CreditPipelineError,
    InputError,
    QualityError,
    UnknownStrategyError,
)
from src.extraction.models import CanonicalEntities
from src.pipeline.service import CreditReportPipeline, build_pipeline
from src.storage.models import Conflict, ConsolidationStrategy
from src.utils.config import load_config
from src.utils.logger import get_logger

from .schemas import (
    AuditResponse,
    ComparisonResponse,
    ConflictResponse,
    ConsolidationResponse,
    ExtractionAttemptResponse,
    HealthResponse,
    MethodStatsResponse,
    PhaseResponse,
    PipelineResponse,
    ReconsolidationResponse,
    ReportResponse,
    SummaryResponse,
    TimeRange,
)

logger = get_logger(__name__)

API_VERSION = "1.0.0"
CONFIG_ENV_VAR = "CREDIT_REPORT_CONFIG"

app = FastAPI(
    title="Credit Report Consolidation API",
    description="Extract and consolidate structured data from credit report scans",
    version=API_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_ALLOWED_CONTENT_TYPES = {
    "image/png",
    "image/jpeg",
    "image/tiff",
    "application/pdf",
    "application/octet-stream",
}


@lru_cache(maxsize=1)
def _get_pipeline() -> CreditReportPipeline:
    """Build the shared pipeline once per process.

    The configuration file is taken from ``CREDIT_REPORT_CONFIG`` when set.
    """
    path = os.environ.get(CONFIG_ENV_VAR)
    return build_pipeline(load_config(Path(path) if path else None))


def _http_error(exc: CreditPipelineError) -> HTTPException:
    """Map a pipeline error to an HTTP error response."""
    if isinstance(exc, InputError):
        return HTTPException(status_code=404, detail=f"{exc}. {exc.user_message}")
    if isinstance(exc, UnknownStrategyError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, QualityError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, ConsolidationError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def _conflicts(conflicts: list[Conflict]) -> list[ConflictResponse]:
    return [ConflictResponse(field=c.field, values=c.values) for c in conflicts]


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        tesseract_available=shutil.which("tesseract") is not None,
    )


@app.post("/reports", response_model=ReportResponse, status_code=201)
async def upload_report(file: Annotated[UploadFile, File(...)]) -> ReportResponse:
    """Store an uploaded credit report for later processing.

    Args:
        file: Uploaded report (PDF, PNG, JPEG, or TIFF).

    Returns:
        The stored report in ``pending`` status.
    """
    if file.content_type and file.content_type not in _ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {file.content_type}",
        )

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    report = _get_pipeline().upload(content, file.filename or "document")
    logger.info("Stored report %s (%s, %d bytes)", report.id, report.file_name, len(content))
    return ReportResponse(
        id=report.id,
        file_name=report.file_name,
        status=report.status.value,
        consolidation_status=report.consolidation_status.value,
        created_at=report.created_at,
        updated_at=report.updated_at,
    )


@app.post("/reports/{report_id}/process", response_model=PipelineResponse)
def process_report(report_id: str) -> PipelineResponse:
    """Run the extraction and consolidation pipeline for a report.

    A failed run is still a 200 response: the outcome carries the
    ``failed`` status and the recorded error.
    """
    try:
        outcome = _get_pipeline().run_pipeline(report_id)
    except CreditPipelineError as exc:
        raise _http_error(exc) from exc

    return PipelineResponse(
        report_id=outcome.report_id,
        status=outcome.status.value,
        confidence=outcome.confidence,
        primary_method=outcome.primary_method,
        requires_human_review=outcome.requires_human_review,
        error=outcome.error,
    )


@app.post(
    "/reports/{report_id}/reconsolidate", response_model=ReconsolidationResponse
)
def reconsolidate_report(
    report_id: str,
    strategy: Annotated[str, Query()] = ConsolidationStrategy.HIGHEST_CONFIDENCE.value,
) -> ReconsolidationResponse:
    """Re-run consolidation over stored attempts with an explicit strategy."""
    try:
        result = _get_pipeline().reconsolidate(report_id, strategy)
    except CreditPipelineError as exc:
        raise _http_error(exc) from exc

    return ReconsolidationResponse(
        report_id=report_id,
        strategy=strategy,
        consolidated_text=result.consolidated_text,
        confidence=result.confidence,
        primary_method=result.primary_method,
    )


@app.get("/reports/{report_id}", response_model=ReportResponse)
async def get_report(report_id: str) -> ReportResponse:
    try:
        report = _get_pipeline().get_report(report_id)
    except CreditPipelineError as exc:
        raise _http_error(exc) from exc

    return ReportResponse(
        id=report.id,
        file_name=report.file_name,
        status=report.status.value,
        consolidation_status=report.consolidation_status.value,
        consolidation_confidence=report.consolidation_confidence,
        primary_extraction_method=report.primary_extraction_method,
        processing_errors=report.processing_errors,
        created_at=report.created_at,
        updated_at=report.updated_at,
    )


@app.get("/reports/{report_id}/entities")
async def get_entities(report_id: str) -> dict:
    """Return the canonical entities of a report."""
    pipeline = _get_pipeline()
    try:
        pipeline.get_report(report_id)
    except CreditPipelineError as exc:
        raise _http_error(exc) from exc

    entities = pipeline.repository.get_canonical_entities(report_id)
    return (entities or CanonicalEntities()).to_dict()


@app.get("/reports/{report_id}/consolidation", response_model=ConsolidationResponse)
async def get_consolidation(report_id: str) -> ConsolidationResponse:
    """Return the latest consolidation metadata of a report."""
    try:
        metadata = _get_pipeline().get_consolidation(report_id)
    except CreditPipelineError as exc:
        raise _http_error(exc) from exc

    if metadata is None:
        raise HTTPException(
            status_code=404, detail=f"Report {report_id} has not been consolidated"
        )

    return ConsolidationResponse(
        report_id=metadata.report_id,
        primary_source=metadata.primary_source,
        consolidation_strategy=metadata.consolidation_strategy.value,
        confidence_level=metadata.confidence_level,
        field_sources=metadata.field_sources,
        conflicts=_conflicts(metadata.conflicts),
        conflict_count=metadata.conflict_count,
        requires_human_review=metadata.requires_human_review,
        notes=metadata.notes,
        processed_at=metadata.processed_at,
    )


@app.get("/reports/{report_id}/comparison", response_model=ComparisonResponse)
async def compare_extractions(report_id: str) -> ComparisonResponse:
    """Compare the stored extraction attempts of a report."""
    try:
        comparison = _get_pipeline().compare_extractions(report_id)
    except CreditPipelineError as exc:
        raise _http_error(exc) from exc

    return ComparisonResponse(
        report_id=report_id,
        extractions=[
            ExtractionAttemptResponse(
                id=r.id,
                extraction_method=r.extraction_method,
                character_count=r.character_count,
                word_count=r.word_count,
                confidence_score=r.confidence_score,
                has_structured_data=r.has_structured_data,
                processing_time_ms=r.processing_time_ms,
                created_at=r.created_at,
            )
            for r in comparison.results
        ],
        similarities=comparison.similarities,
        differences=_conflicts(comparison.differences),
    )


@app.get("/reports/{report_id}/audit", response_model=AuditResponse)
async def audit_report(report_id: str) -> AuditResponse:
    """Locate where processing of a report stopped."""
    audit = _get_pipeline().audit_report(report_id)
    return AuditResponse(
        report_id=audit.report_id,
        failure_point=audit.failure_point,
        phases=[
            PhaseResponse(
                phase=p.phase, success=p.success, details=p.details, data=p.data
            )
            for p in audit.phases
        ],
        record_counts=audit.record_counts,
    )


@app.get("/extractions/summary", response_model=SummaryResponse)
async def extraction_summary(
    time_range: Annotated[TimeRange, Query()] = TimeRange.DAY,
) -> SummaryResponse:
    """Aggregate extraction and consolidation statistics."""
    summary = _get_pipeline().summary(time_range.value)
    return SummaryResponse(
        time_range=time_range.value,
        total_extractions=summary.total_extractions,
        method_breakdown=[
            MethodStatsResponse(
                method=s.method, count=s.count, avg_confidence=s.avg_confidence
            )
            for s in summary.method_breakdown
        ],
        total_consolidations=summary.total_consolidations,
        avg_consolidation_confidence=summary.avg_consolidation_confidence,
        requires_review=summary.requires_review,
    )
