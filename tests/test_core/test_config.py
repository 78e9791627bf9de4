"""Tests for nucring.core.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from nucring.core.config import AnalysisConfig
from nucring.core.exceptions import ConfigurationError


class TestDefaults:
    def test_defaults(self):
        cfg = AnalysisConfig()
        assert cfg.block_size == 127
        assert cfg.local_radius == 15
        assert cfg.min_area == 30.0
        assert cfg.max_area == 500.0
        assert cfg.cytoplasm_thickness == 2.0
        assert cfg.file_suffix == ".tif"
        assert cfg.measure_channels == (2, 3)
        assert cfg.threshold_method == "phansalkar"
        assert cfg.workers == 1

    def test_paths_coerced(self, tmp_path):
        cfg = AnalysisConfig(input_dir=str(tmp_path), output_dir=str(tmp_path / "out"))
        assert isinstance(cfg.input_dir, Path)
        assert isinstance(cfg.output_dir, Path)

    def test_channels_coerced_to_tuple(self):
        assert AnalysisConfig(measure_channels=[4, 2]).measure_channels == (4, 2)


class TestValidation:
    @pytest.mark.parametrize("field_name, value", [
        ("block_size", 0),
        ("local_radius", -1),
        ("min_area", 0),
        ("max_area", -5.0),
        ("cytoplasm_thickness", 0),
        ("workers", 0),
        ("blur_sigma", -1.0),
        ("clip_limit", 0.0),
        ("r", 0.0),
        ("threshold_method", "otsu"),
        ("pixel_size_um", 0.0),
        ("file_suffix", ""),
        ("nuclear_channel", 0),
    ])
    def test_invalid_value(self, field_name, value):
        with pytest.raises(ConfigurationError) as exc_info:
            AnalysisConfig(**{field_name: value})
        assert exc_info.value.field == field_name

    def test_min_area_above_max_area(self):
        with pytest.raises(ConfigurationError, match="max_area"):
            AnalysisConfig(min_area=600.0, max_area=500.0)

    def test_empty_channels(self):
        with pytest.raises(ConfigurationError):
            AnalysisConfig(measure_channels=())

    def test_duplicate_channels(self):
        with pytest.raises(ConfigurationError, match="unique"):
            AnalysisConfig(measure_channels=(2, 2))


class TestOverrides:
    def test_none_values_ignored(self):
        cfg = AnalysisConfig().with_overrides(block_size=64, min_area=None)
        assert cfg.block_size == 64
        assert cfg.min_area == 30.0

    def test_overrides_revalidated(self):
        with pytest.raises(ConfigurationError):
            AnalysisConfig().with_overrides(block_size=-2)

    def test_unknown_option(self):
        with pytest.raises(ConfigurationError, match="unknown"):
            AnalysisConfig().with_overrides(colour="red")


class TestDictConversion:
    def test_round_trip(self, tmp_path):
        cfg = AnalysisConfig(input_dir=tmp_path, measure_channels=(2, 4), exclusive_cytoplasm=True)
        data = cfg.to_dict()
        assert data["input_dir"] == str(tmp_path)
        assert data["measure_channels"] == [2, 4]
        assert "extra" not in data
        assert AnalysisConfig.from_dict(data) == cfg

    def test_unknown_keys_kept_in_extra(self):
        cfg = AnalysisConfig.from_dict({"block_size": 64, "operator": "jd"})
        assert cfg.block_size == 64
        assert cfg.extra == {"operator": "jd"}
