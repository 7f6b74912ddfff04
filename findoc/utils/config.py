"""Configuration management for the extraction engine.

Loads and validates YAML configuration with sensible defaults for
geometry reconstruction, date scoring, rule extraction, and payslip or
statement classification.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_COMMON_ANCHORS: list[str] = [
    "Pay Date",
    "Pay Period",
    "Period Start",
    "Period End",
    "Gross Pay",
    "Net Pay",
    "Total Deductions",
    "Earnings",
    "Deductions",
    "YTD",
    "Employee Name",
    "Employer",
]

DEFAULT_DEDUCTION_KEYWORDS: list[str] = [
    "tax",
    "ni",
    "insurance",
    "deduction",
    "student loan",
]


class GeometryConfig(BaseModel):
    """Configuration for line reconstruction from glyph runs."""

    line_tolerance: float = 4.0


class DateConfig(BaseModel):
    """Configuration for date candidate scoring and resolution."""

    regex_confidence: float = 0.5
    natural_confidence: float = 0.35
    prefer_future: bool = True
    date_order: str = "DMY"
    languages: list[str] = Field(default_factory=lambda: ["en"])


class ExtractionConfig(BaseModel):
    """Configuration for the field rule engine."""

    anchor_suggestion_limit: int = 50
    common_anchors: list[str] = Field(
        default_factory=lambda: list(DEFAULT_COMMON_ANCHORS)
    )


class ClassificationConfig(BaseModel):
    """Configuration for payslip bucketing and statement row clustering."""

    deduction_keywords: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DEDUCTION_KEYWORDS)
    )
    cluster_sample_rows: int = 3


class AppConfig(BaseModel):
    """Top-level application configuration."""

    geometry: GeometryConfig = Field(default_factory=GeometryConfig)
    dates: DateConfig = Field(default_factory=DateConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)
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
