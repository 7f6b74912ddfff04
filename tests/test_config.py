"""Tests for configuration loading and validation."""

from pathlib import Path

import yaml

from findoc.utils.config import (
    DEFAULT_COMMON_ANCHORS,
    AppConfig,
    ClassificationConfig,
    DateConfig,
    ExtractionConfig,
    GeometryConfig,
    load_config,
)


class TestGeometryConfig:
    """Tests for GeometryConfig defaults and overrides."""

    def test_defaults(self) -> None:
        assert GeometryConfig().line_tolerance == 4.0

    def test_override(self) -> None:
        assert GeometryConfig(line_tolerance=2.5).line_tolerance == 2.5


class TestDateConfig:
    """Tests for DateConfig defaults."""

    def test_defaults(self) -> None:
        cfg = DateConfig()
        assert cfg.regex_confidence == 0.5
        assert cfg.natural_confidence == 0.35
        assert cfg.prefer_future is True
        assert cfg.date_order == "DMY"
        assert cfg.languages == ["en"]


class TestExtractionConfig:
    """Tests for ExtractionConfig defaults."""

    def test_defaults(self) -> None:
        cfg = ExtractionConfig()
        assert cfg.anchor_suggestion_limit == 50
        assert cfg.common_anchors == DEFAULT_COMMON_ANCHORS

    def test_common_anchors_not_shared(self) -> None:
        first = ExtractionConfig()
        first.common_anchors.append("Bonus")
        assert "Bonus" not in ExtractionConfig().common_anchors


class TestClassificationConfig:
    """Tests for ClassificationConfig defaults."""

    def test_defaults(self) -> None:
        cfg = ClassificationConfig()
        assert "student loan" in cfg.deduction_keywords
        assert cfg.cluster_sample_rows == 3


class TestAppConfig:
    """Tests for the top-level AppConfig."""

    def test_defaults(self) -> None:
        cfg = AppConfig()
        assert isinstance(cfg.geometry, GeometryConfig)
        assert isinstance(cfg.dates, DateConfig)
        assert isinstance(cfg.extraction, ExtractionConfig)
        assert isinstance(cfg.classification, ClassificationConfig)
        assert cfg.log_level == "INFO"

    def test_nested_override(self) -> None:
        cfg = AppConfig(dates=DateConfig(prefer_future=False), log_level="DEBUG")
        assert cfg.dates.prefer_future is False
        assert cfg.log_level == "DEBUG"


class TestLoadConfig:
    """Tests for the load_config function."""

    def test_load_project_config(self, config_dir: Path) -> None:
        cfg = load_config(config_dir / "config.yaml")
        assert isinstance(cfg, AppConfig)
        assert cfg.geometry.line_tolerance == 4.0
        assert cfg.dates.date_order == "DMY"

    def test_load_missing_file_returns_defaults(self) -> None:
        cfg = load_config(Path("/nonexistent/path/config.yaml"))
        assert isinstance(cfg, AppConfig)
        assert cfg.extraction.anchor_suggestion_limit == 50

    def test_load_custom_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "geometry": {"line_tolerance": 6},
            "dates": {"prefer_future": False, "languages": ["en", "de"]},
            "log_level": "DEBUG",
        }
        config_file = tmp_path / "config.yaml"
        with open(config_file, "w") as f:
            yaml.dump(config_data, f)

        cfg = load_config(config_file)
        assert cfg.geometry.line_tolerance == 6.0
        assert cfg.dates.prefer_future is False
        assert cfg.dates.languages == ["en", "de"]
        assert cfg.log_level == "DEBUG"

    def test_load_empty_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        cfg = load_config(config_file)
        assert isinstance(cfg, AppConfig)

    def test_load_none_defaults_to_standard_path(self) -> None:
        cfg = load_config()
        assert isinstance(cfg, AppConfig)
