"""Configuration management for the identity document OCR core.

Loads and validates YAML configuration with calibrated defaults for
preprocessing, OCR, classification, extraction regions, and scoring.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)


# Named preprocessing profiles. Explicit keys in a config file override
# the values a profile provides.
PREPROCESSING_PROFILES: dict[str, dict[str, Any]] = {
    "ocr_input": {
        "denoise_method": "gaussian",
        "binarize_method": "adaptive",
    },
    "aggressive": {
        "denoise_method": "median",
        "binarize_method": "otsu",
    },
}


class PreprocessingConfig(BaseModel):
    """Configuration for the image preprocessing pipeline."""

    profile: str = "ocr_input"
    deskew_enabled: bool = True
    hough_vote_threshold: int = 120
    hough_suppression_radius: int = 10
    max_skew_degrees: float = 15.0
    min_correction_degrees: float = 1.0
    denoise_enabled: bool = True
    denoise_method: str = "gaussian"
    gaussian_sigma: float = 0.5
    median_kernel_size: int = 3
    contrast_enabled: bool = True
    binarize_enabled: bool = True
    binarize_method: str = "adaptive"
    adaptive_block_size: int = 15
    adaptive_c: int = 5
    morphology_enabled: bool = True

    @model_validator(mode="before")
    @classmethod
    def _apply_profile(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        profile = data.get("profile", "ocr_input")
        if profile not in PREPROCESSING_PROFILES:
            raise ValueError(f"Unknown preprocessing profile: {profile}")
        return {**PREPROCESSING_PROFILES[profile], **data}


class OCRConfig(BaseModel):
    """Configuration for the Tesseract OCR engine."""

    tesseract_cmd: str | None = None
    lang: str = "spa"
    psm: int = 3
    region_psm: int = 6
    oem: int = 1
    char_whitelist: str = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789ÁÉÍÓÚÑÜ<:/.-,"
    timeout_seconds: float = 30.0
    pool_size: int = 1


class ClassifierConfig(BaseModel):
    """Aspect-ratio bands and MRZ band signature used by the classifier."""

    passport_ratio_min: float = 1.2
    passport_ratio_max: float = 1.6
    id_card_ratio_min: float = 1.4
    id_card_ratio_max: float = 1.8
    mrz_band_fraction: float = 0.25
    mrz_min_run_length: int = 20
    mrz_min_rows: int = 2
    dark_level: int = 128


class Region(BaseModel):
    """A rectangular sub-region expressed as fractions of image size."""

    x0: float = Field(ge=0.0, le=1.0)
    y0: float = Field(ge=0.0, le=1.0)
    x1: float = Field(ge=0.0, le=1.0)
    y1: float = Field(ge=0.0, le=1.0)


def _default_front_regions() -> dict[str, Region]:
    return {
        "names": Region(x0=0.30, y0=0.15, x1=0.95, y1=0.40),
        "dates": Region(x0=0.30, y0=0.40, x1=0.95, y1=0.65),
        "numbers": Region(x0=0.0, y0=0.80, x1=1.0, y1=1.0),
    }


def _default_back_regions() -> dict[str, Region]:
    return {
        "address": Region(x0=0.0, y0=0.0, x1=0.70, y1=0.60),
        "mrz": Region(x0=0.0, y0=0.70, x1=1.0, y1=1.0),
    }


class ExtractionConfig(BaseModel):
    """Configuration for field extraction.

    ``mrz_century_pivot`` maps two-digit MRZ years below the pivot to the
    2000s. ``None`` derives the pivot from the current year instead.
    """

    front_regions: dict[str, Region] = Field(default_factory=_default_front_regions)
    back_regions: dict[str, Region] = Field(default_factory=_default_back_regions)
    mrz_century_pivot: int | None = 30


def _default_weights() -> dict[str, float]:
    return {
        "document_number": 2.0,
        "first_name": 1.5,
        "last_names": 1.5,
        "birth_date": 1.0,
        "gender": 0.5,
        "nationality": 0.5,
        "expiry_date": 0.5,
    }


class ScoringConfig(BaseModel):
    """Field weights and thresholds for confidence scoring."""

    field_weights: dict[str, float] = Field(default_factory=_default_weights)
    checksum_bonus: float = 1.0
    format_valid_threshold: float = 0.3
    acceptance_floor: float = 0.2
    alternate_retry_below: float = 0.1


class LimitsConfig(BaseModel):
    """Upload limits enforced before any pixel work is done."""

    max_upload_bytes: int = 10 * 1024 * 1024
    max_decoded_mb: float = 50.0
    allowed_mime_types: list[str] = Field(
        default_factory=lambda: [
            "image/png",
            "image/jpeg",
            "image/jpg",
            "image/tiff",
            "image/webp",
            "image/bmp",
            "application/octet-stream",
        ]
    )


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    limits: LimitsConfig = Field(default_factory=LimitsConfig)
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
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
