"""Tests for configuration defaults, presets, and settings files."""

import json
from pathlib import Path

import pytest

from image_hunt.config import HuntConfig, load_config


def test_defaults():
    config = HuntConfig()
    assert config.standard.min_megapixels == 0.4
    assert config.fallback_to_thumbnails is False
    assert config.strategy_order[0] == "structured-data"
    assert config.delay_ms == 2000
    assert config.delay_seconds == 2.0


def test_presets():
    fast = HuntConfig().with_preset("fast")
    assert (fast.max_source_navigations, fast.delay_ms, fast.size) == (0, 1000, "medium")
    with pytest.raises(ValueError):
        HuntConfig().with_preset("ludicrous")


def test_load_config_file_and_overrides(tmp_path, caplog):
    settings = tmp_path / "settings.json"
    settings.write_text(
        json.dumps(
            {
                "download_dir": "saved",
                "min_width": 800,
                "strategy_order": ["result-anchor"],
                "lastRun": "2024-01-01",
            }
        )
    )
    with caplog.at_level("WARNING", logger="image_hunt.config"):
        config = load_config(settings, min_width=None, min_height=700)
    assert config.download_dir == Path("saved")
    assert config.min_width == 800
    assert config.min_height == 700
    assert config.strategy_order == ("result-anchor",)
    assert "lastRun" in caplog.text


def test_launcher_settings_use_camel_case_and_milliseconds(tmp_path, caplog):
    settings = tmp_path / "dragon_config.json"
    settings.write_text(
        json.dumps(
            {
                "downloadDir": "./dragon_downloads",
                "maxResults": 50,
                "minWidth": 400,
                "minHeight": 400,
                "minMegapixels": 0.4,
                "delay": 2000,
                "maxSourceNavigations": 5,
                "quality": "fast",
                "imageType": "photo",
                "safeSearch": "moderate",
                "version": "1.0.0",
            }
        )
    )
    with caplog.at_level("WARNING", logger="image_hunt.config"):
        config = load_config(settings)

    assert config.download_dir == Path("dragon_downloads")
    assert config.delay_ms == 2000
    assert config.delay_seconds == 2.0
    # File values win over the preset they name.
    assert config.max_source_navigations == 5
    assert config.size == "medium"
    assert config.safe_search == "moderate"
    assert [r.getMessage() for r in caplog.records] == [
        f"Ignoring unknown setting 'version' in {settings}"
    ]


def test_missing_file_uses_defaults(tmp_path):
    assert load_config(tmp_path / "absent.json") == HuntConfig()
