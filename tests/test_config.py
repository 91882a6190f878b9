"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from id_ocr.utils.config import (
    AppConfig,
    ExtractionConfig,
    OCRConfig,
    PreprocessingConfig,
    Region,
    ScoringConfig,
    load_config,
)


class TestPreprocessingConfig:
    """Tests for PreprocessingConfig defaults and profiles."""

    def test_defaults(self) -> None:
        cfg = PreprocessingConfig()
        assert cfg.profile == "ocr_input"
        assert cfg.deskew_enabled is True
        assert cfg.denoise_method == "gaussian"
        assert cfg.binarize_method == "adaptive"
        assert cfg.max_skew_degrees == 15.0

    def test_aggressive_profile(self) -> None:
        cfg = PreprocessingConfig(profile="aggressive")
        assert cfg.denoise_method == "median"
        assert cfg.binarize_method == "otsu"

    def test_explicit_keys_override_profile(self) -> None:
        cfg = PreprocessingConfig(profile="aggressive", binarize_method="adaptive")
        assert cfg.binarize_method == "adaptive"
        assert cfg.denoise_method == "median"

    def test_unknown_profile(self) -> None:
        with pytest.raises(ValidationError):
            PreprocessingConfig(profile="cartoon")


class TestOCRConfig:
    """Tests for OCRConfig defaults and overrides."""

    def test_defaults(self) -> None:
        cfg = OCRConfig()
        assert cfg.lang == "spa"
        assert cfg.psm == 3
        assert cfg.region_psm == 6
        assert cfg.tesseract_cmd is None
        assert "<" in cfg.char_whitelist

    def test_custom_lang(self) -> None:
        cfg = OCRConfig(lang="spa+eng", psm=6)
        assert cfg.lang == "spa+eng"
        assert cfg.psm == 6


class TestExtractionConfig:
    """Tests for region and MRZ pivot configuration."""

    def test_default_regions(self) -> None:
        cfg = ExtractionConfig()
        assert set(cfg.front_regions) == {"names", "dates", "numbers"}
        assert set(cfg.back_regions) == {"address", "mrz"}
        assert cfg.mrz_century_pivot == 30

    def test_sliding_pivot(self) -> None:
        assert ExtractionConfig(mrz_century_pivot=None).mrz_century_pivot is None

    def test_region_bounds_validated(self) -> None:
        with pytest.raises(ValidationError):
            Region(x0=0.0, y0=0.0, x1=1.5, y1=1.0)


class TestScoringConfig:
    """Tests for scoring weights and thresholds."""

    def test_defaults(self) -> None:
        cfg = ScoringConfig()
        assert sum(cfg.field_weights.values()) == pytest.approx(7.5)
        assert cfg.checksum_bonus == 1.0
        assert cfg.acceptance_floor == 0.2


class TestAppConfig:
    """Tests for the top-level AppConfig."""

    def test_defaults(self) -> None:
        cfg = AppConfig()
        assert isinstance(cfg.preprocessing, PreprocessingConfig)
        assert isinstance(cfg.ocr, OCRConfig)
        assert isinstance(cfg.extraction, ExtractionConfig)
        assert cfg.log_level == "INFO"

    def test_nested_override(self) -> None:
        cfg = AppConfig(
            preprocessing=PreprocessingConfig(deskew_enabled=False),
            log_level="DEBUG",
        )
        assert cfg.preprocessing.deskew_enabled is False
        assert cfg.log_level == "DEBUG"


class TestLoadConfig:
    """Tests for the load_config function."""

    def test_load_default_config(self, config_dir: Path) -> None:
        cfg = load_config(config_dir / "config.yaml")
        assert isinstance(cfg, AppConfig)
        assert cfg.ocr.lang == "spa"
        assert cfg.ocr.pool_size == 2
        assert cfg.extraction.front_regions["numbers"].y0 == 0.80

    def test_load_missing_file_returns_defaults(self) -> None:
        cfg = load_config(Path("/nonexistent/path/config.yaml"))
        assert isinstance(cfg, AppConfig)
        assert cfg.ocr.pool_size == 1

    def test_load_custom_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "preprocessing": {"profile": "aggressive"},
            "ocr": {"lang": "eng", "psm": 6},
            "extraction": {"mrz_century_pivot": None},
            "log_level": "DEBUG",
        }
        config_file = tmp_path / "config.yaml"
        with open(config_file, "w") as f:
            yaml.dump(config_data, f)

        cfg = load_config(config_file)
        assert cfg.preprocessing.binarize_method == "otsu"
        assert cfg.ocr.lang == "eng"
        assert cfg.ocr.psm == 6
        assert cfg.extraction.mrz_century_pivot is None
        assert cfg.log_level == "DEBUG"

    def test_load_empty_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        cfg = load_config(config_file)
        assert isinstance(cfg, AppConfig)
