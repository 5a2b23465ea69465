"""Configuration objects and constants for an image hunt."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger("image_hunt.config")

SEARCH_REFERER = "https://www.google.com/"

DEFAULT_USER_AGENTS: Tuple[str, ...] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)

# Floors applied while discovering candidates, independent of the user's standard.
DISCOVERY_MIN_SIDE = 512
DISCOVERY_MIN_MEGAPIXELS = 0.5

DEFAULT_STRATEGY_ORDER: Tuple[str, ...] = (
    "structured-data",
    "result-anchor",
    "inline-script",
)

QUALITY_PRESETS: Dict[str, Dict[str, Any]] = {
    "high": {"max_source_navigations": 8, "delay_ms": 3000, "size": "xlarge"},
    "medium": {"max_source_navigations": 3, "delay_ms": 2000, "size": "large"},
    "fast": {"max_source_navigations": 0, "delay_ms": 1000, "size": "medium"},
}


# camelCase keys written by the interactive launcher's settings file.
SETTINGS_ALIASES: Dict[str, str] = {
    "downloadDir": "download_dir",
    "delay": "delay_ms",
    "maxResults": "max_results",
    "minWidth": "min_width",
    "minHeight": "min_height",
    "minMegapixels": "min_megapixels",
    "maxSourceNavigations": "max_source_navigations",
    "fallbackToThumbnails": "fallback_to_thumbnails",
    "imageType": "image_type",
    "safeSearch": "safe_search",
}


@dataclass(frozen=True)
class QualityStandard:
    """Minimum measured dimensions every kept image must satisfy."""

    min_width: int = 400
    min_height: int = 400
    min_megapixels: float = 0.4


@dataclass
class HuntConfig:
    """Top-level settings that control searching, resolution, and downloads."""

    download_dir: Path = Path("downloads")
    delay_ms: int = 2000
    max_results: int = 50
    min_width: int = 400
    min_height: int = 400
    min_megapixels: float = 0.4
    max_source_navigations: int = 3
    fallback_to_thumbnails: bool = False
    image_type: str = "photo"
    size: str = "large"
    safe_search: str = "moderate"
    head_timeout: float = 15.0
    navigation_timeout: float = 20.0
    search_timeout: float = 30.0
    download_timeout: float = 30.0
    headless: bool = True
    candidate_multiplier: int = 3
    precheck_declared: bool = False
    max_scroll_attempts: int = 10
    strategy_order: Tuple[str, ...] = field(default=DEFAULT_STRATEGY_ORDER)
    user_agents: Tuple[str, ...] = field(default=DEFAULT_USER_AGENTS)

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000

    @property
    def standard(self) -> QualityStandard:
        return QualityStandard(
            min_width=self.min_width,
            min_height=self.min_height,
            min_megapixels=self.min_megapixels,
        )

    def with_preset(self, name: str) -> "HuntConfig":
        """Return a copy with the named quality preset applied."""
        try:
            preset = QUALITY_PRESETS[name]
        except KeyError as exc:
            raise ValueError(
                f"Unknown quality preset {name!r}; expected one of {sorted(QUALITY_PRESETS)}"
            ) from exc
        return replace(self, **preset)


def load_config(path: Optional[Path], **overrides: Any) -> HuntConfig:
    """Build a config from an optional JSON settings file plus explicit overrides.

    Keys in the file may use the dataclass field names or the launcher's
    camelCase names (see :data:`SETTINGS_ALIASES`); ``delay`` is always in
    milliseconds. A ``quality`` key applies that preset before the other
    values. Unknown keys are ignored with a warning so that older settings
    files keep loading.
    """
    known = {f.name for f in fields(HuntConfig)}
    values: Dict[str, Any] = {}
    preset: Optional[str] = None
    if path is not None and path.exists():
        with path.open("r", encoding="utf-8") as handle:
            saved = json.load(handle)
        if not isinstance(saved, dict):
            raise ValueError(f"Settings file {path} must contain a JSON object")
        for key, value in saved.items():
            if key == "quality":
                preset = value
                continue
            name = SETTINGS_ALIASES.get(key, key)
            if name not in known:
                logger.warning("Ignoring unknown setting %r in %s", key, path)
                continue
            values[name] = value
    elif path is not None:
        logger.debug("Settings file %s not found; using defaults", path)

    values.update({k: v for k, v in overrides.items() if v is not None})
    if "download_dir" in values:
        values["download_dir"] = Path(values["download_dir"])
    for key in ("strategy_order", "user_agents"):
        if key in values:
            values[key] = tuple(values[key])
    base = HuntConfig().with_preset(preset) if preset else HuntConfig()
    return replace(base, **values)
