"""Configuration management for the credit report consolidation pipeline.

Loads and validates YAML configuration with sensible defaults for OCR,
text quality, confidence scoring, consolidation, and pipeline settings.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class OCRConfig(BaseModel):
    """Configuration for the OCR collaborators."""

    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 3
    pdf_dpi: int = 300
    timeout_seconds: float = 120.0
    enable_fallback: bool = True


class QualityConfig(BaseModel):
    """Configuration for normalized text quality scoring."""

    min_length: int = 100
    threshold: int = 40


class ConfidenceConfig(BaseModel):
    """Configuration for per-attempt confidence scoring."""

    method_scores: dict[str, float] = Field(
        default_factory=lambda: {
            "docsumo": 0.86,
            "tesseract": 0.86,
            "fallback": 0.3,
        }
    )
    unknown_method_score: float = 0.6
    min_text_length: int = 50
    max_confidence: float = 0.99
    length_cap: int = 10000
    keyword_cap: int = 50


class ConsolidationConfig(BaseModel):
    """Configuration for multi-source consolidation."""

    default_strategy: str = "highest_confidence"
    review_threshold: float = 0.7
    conflict_ratio: float = 0.5
    majority_vote_cap: float = 0.95
    manual_review_confidence: float = 0.5


class PipelineConfig(BaseModel):
    """Configuration for the report processing pipeline."""

    min_text_length: int = 100
    parallel_extractors: bool = False
    max_error_length: int = 500


class AppConfig(BaseModel):
    """Top-level application configuration."""

    ocr: OCRConfig = Field(default_factory=OCRConfig)
    quality: QualityConfig = Field(default_factory=QualityConfig)
    confidence: ConfidenceConfig = Field(default_factory=ConfidenceConfig)
    consolidation: ConsolidationConfig = Field(default_factory=ConsolidationConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
