"""Tests for command-line parsing and config assembly."""

from pathlib import Path

from image_hunt.cli import build_config, parse_args


def test_bare_term_defaults_to_hunt():
    args = parse_args(["red fox", "--count", "5"])
    assert args.command == "hunt"
    assert args.search_term == "red fox"
    assert args.count == 5


def test_build_config_applies_preset_then_flags(tmp_path):
    args = parse_args(
        ["hunt", "fox", "--quality", "high", "--delay", "500", "--output", str(tmp_path), "--fallback-to-thumbnails"]
    )
    config = build_config(args)
    assert config.max_source_navigations == 8
    assert config.size == "xlarge"
    assert config.delay_ms == 500
    assert config.delay_seconds == 0.5
    assert config.fallback_to_thumbnails is True
    assert config.download_dir == tmp_path.resolve()


def test_preset_delay_applies_without_flag(tmp_path):
    config = build_config(parse_args(["fox", "--quality", "high", "--output", str(tmp_path)]))
    assert config.delay_ms == 3000


def test_analyse_command():
    args = parse_args(["analyse", "somewhere"])
    assert args.command == "analyse"
    assert args.path == Path("somewhere")
