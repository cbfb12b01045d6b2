"""Multi-source consolidation of extraction attempts.

Reconciles the extraction results of one report (for example a primary OCR
pass and a degraded fallback pass) into one canonical text, with a
confidence level, a conflict list, and a human-review decision.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from src.errors import NoExtractionResultsError, UnknownStrategyError
from src.storage.models import (
    Conflict,
    ConsolidationMetadata,
    ConsolidationStrategy,
    ExtractionResult,
    utcnow,
)
from src.utils.config import ConsolidationConfig
from src.utils.logger import get_logger

logger = get_logger(__name__)

COMMON_REPORT_PHRASES: list[str] = [
    "credit report",
    "personal information",
    "account number",
    "payment history",
]

TIME_WINDOWS: dict[str, timedelta] = {
    "day": timedelta(days=1),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
}


@dataclass
class ConsolidationOutcome:
    """Result of one consolidation run."""

    metadata: ConsolidationMetadata
    consolidated_text: str
    primary_result: ExtractionResult


@dataclass
class ExtractionComparison:
    """Side-by-side view of the attempts for one report."""

    results: list[ExtractionResult]
    similarities: list[str] = field(default_factory=list)
    differences: list[Conflict] = field(default_factory=list)


@dataclass
class MethodStats:
    method: str
    count: int
    avg_confidence: float


@dataclass
class ExtractionSummary:
    """Aggregate extraction and consolidation statistics."""

    total_extractions: int
    method_breakdown: list[MethodStats]
    total_consolidations: int
    avg_consolidation_confidence: float
    requires_review: int


def window_start(time_range: str, now: datetime | None = None) -> datetime:
    """Start of a ``day``, ``week`` or ``month`` window ending at ``now``.

    Unknown ranges fall back to one day.
    """
    now = now or utcnow()
    return now - TIME_WINDOWS.get(time_range, TIME_WINDOWS["day"])


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _highest_confidence(results: list[ExtractionResult]) -> ExtractionResult:
    best = results[0]
    for result in results[1:]:
        if result.confidence_score > best.confidence_score:
            best = result
    return best


class ConsolidationEngine:
    """Selects or merges a canonical result from extraction attempts.

    Args:
        config: Thresholds for review, conflicts, and strategy caps.
    """

    def __init__(self, config: ConsolidationConfig | None = None) -> None:
        self.config = config or ConsolidationConfig()

    def consolidate(
        self,
        results: list[ExtractionResult],
        strategy: ConsolidationStrategy | str | None = None,
        previous: ConsolidationMetadata | None = None,
        explicit: bool = False,
        report_id: str | None = None,
    ) -> ConsolidationOutcome:
        """Consolidate all extraction results of one report.

        Args:
            results: Every extraction attempt stored for the report.
            strategy: Strategy to apply. Defaults to the configured one.
            previous: The currently stored metadata, if any.
            explicit: Whether an operator requested this run. Only an
                explicit run with a different strategy may clear a stored
                human-review flag.
            report_id: Report id used when ``results`` is empty.

        Returns:
            Metadata, canonical text, and the primary extraction result.

        Raises:
            NoExtractionResultsError: If ``results`` is empty.
            UnknownStrategyError: If ``strategy`` is not recognised.
        """
        if not results:
            raise NoExtractionResultsError(report_id)

        requested = self._resolve_strategy(strategy)
        report_id = results[0].report_id
        applied = requested
        if len(results) == 1 and requested != ConsolidationStrategy.MANUAL_REVIEW:
            applied = ConsolidationStrategy.SINGLE_SOURCE
        elif requested == ConsolidationStrategy.SINGLE_SOURCE:
            applied = ConsolidationStrategy.HIGHEST_CONFIDENCE

        if applied == ConsolidationStrategy.SINGLE_SOURCE:
            primary = results[0]
            consolidated_text = primary.extracted_text
            confidence = primary.confidence_score
        elif applied == ConsolidationStrategy.HIGHEST_CONFIDENCE:
            primary = _highest_confidence(results)
            consolidated_text = primary.extracted_text
            confidence = primary.confidence_score
        elif applied == ConsolidationStrategy.MAJORITY_VOTE:
            primary = self._median_length(results)
            consolidated_text = primary.extracted_text
            average = sum(r.confidence_score for r in results) / len(results)
            confidence = min(self.config.majority_vote_cap, average)
        else:
            primary = _highest_confidence(results)
            consolidated_text = primary.extracted_text
            confidence = self.config.manual_review_confidence

        confidence = _clamp(confidence)
        conflicts = self.detect_conflicts(results)
        requires_review = (
            applied == ConsolidationStrategy.MANUAL_REVIEW
            or confidence < self.config.review_threshold
        )

        prefix = "Re-consolidated" if explicit else "Consolidated"
        notes = (
            f"{prefix} {len(results)} extraction(s) using {applied.value}. "
            f"Confidence: {confidence:.2f}"
        )
        if previous is not None and previous.requires_human_review and not requires_review:
            may_clear = explicit and applied != previous.consolidation_strategy
            if not may_clear:
                requires_review = True
                notes += ". Human review flag retained from previous consolidation"

        metadata = ConsolidationMetadata(
            report_id=report_id,
            primary_source=primary.extraction_method,
            consolidation_strategy=applied,
            confidence_level=confidence,
            field_sources={
                "strategy_used": applied.value,
                "primary_text": primary.extraction_method,
                "total_sources": len(results),
                "methods_available": [r.extraction_method for r in results],
            },
            conflicts=conflicts,
            conflict_count=len(conflicts),
            requires_human_review=requires_review,
            notes=notes,
        )

        logger.info(
            "Consolidated report %s: strategy=%s primary=%s confidence=%.2f "
            "conflicts=%d review=%s",
            report_id,
            applied.value,
            primary.extraction_method,
            confidence,
            len(conflicts),
            requires_review,
        )
        return ConsolidationOutcome(
            metadata=metadata,
            consolidated_text=consolidated_text,
            primary_result=primary,
        )

    def _resolve_strategy(
        self, strategy: ConsolidationStrategy | str | None
    ) -> ConsolidationStrategy:
        value = strategy if strategy is not None else self.config.default_strategy
        try:
            return ConsolidationStrategy(value)
        except ValueError as exc:
            raise UnknownStrategyError(str(value)) from exc

    @staticmethod
    def _median_length(results: list[ExtractionResult]) -> ExtractionResult:
        ordered = sorted(results, key=lambda r: r.character_count)
        return ordered[len(ordered) // 2]

    def detect_conflicts(self, results: list[ExtractionResult]) -> list[Conflict]:
        """Find disagreements between attempts.

        Only text length is compared: a relative spread of character counts
        above ``conflict_ratio`` yields one "Text Length" conflict.

        Args:
            results: Extraction attempts for one report.

        Returns:
            Zero or one conflict.
        """
        if len(results) < 2:
            return []

        counts = [r.character_count for r in results]
        shortest, longest = min(counts), max(counts)
        if shortest == 0:
            diverges = longest > 0
        else:
            diverges = (longest - shortest) / shortest > self.config.conflict_ratio

        if not diverges:
            return []

        return [
            Conflict(
                field="Text Length",
                values=[
                    {
                        "method": r.extraction_method,
                        "value": f"{r.character_count} characters",
                        "confidence": r.confidence_score,
                    }
                    for r in results
                ],
            )
        ]

    def compare(self, results: list[ExtractionResult]) -> ExtractionComparison:
        """Compare attempts: phrases common to all, and detected conflicts.

        The comparison is diagnostic only and does not change any stored
        conflict count.
        """
        if len(results) < 2:
            return ExtractionComparison(results=results)

        similarities = [
            f"All extractions contain: {phrase}"
            for phrase in COMMON_REPORT_PHRASES
            if all(phrase in r.extracted_text.lower() for r in results)
        ]
        return ExtractionComparison(
            results=results,
            similarities=similarities,
            differences=self.detect_conflicts(results),
        )

    def summarize(
        self,
        extractions: list[ExtractionResult],
        consolidations: list[ConsolidationMetadata],
    ) -> ExtractionSummary:
        """Aggregate per-method and consolidation statistics.

        Args:
            extractions: Extraction rows in the window of interest.
            consolidations: Consolidation rows in the same window.
        """
        by_method: dict[str, list[float]] = {}
        for result in extractions:
            by_method.setdefault(result.extraction_method, []).append(
                result.confidence_score
            )

        breakdown = [
            MethodStats(
                method=method,
                count=len(scores),
                avg_confidence=sum(scores) / len(scores),
            )
            for method, scores in sorted(by_method.items())
        ]

        total = len(consolidations)
        avg_confidence = (
            sum(m.confidence_level for m in consolidations) / total if total else 0.0
        )
        return ExtractionSummary(
            total_extractions=len(extractions),
            method_breakdown=breakdown,
            total_consolidations=total,
            avg_consolidation_confidence=avg_confidence,
            requires_review=sum(1 for m in consolidations if m.requires_human_review),
        )
