"""Data models used throughout the acquisition pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

TIER_REAL_FULLSIZE = "real-fullsize"
TIER_ENHANCED = "enhanced"
TIER_THUMBNAIL = "thumbnail"
TIER_FAILED = "failed"

# Best first.
RESOLUTION_TIERS = (TIER_REAL_FULLSIZE, TIER_ENHANCED, TIER_THUMBNAIL, TIER_FAILED)


@dataclass(frozen=True)
class ImageCandidate:
    """Unresolved reference to a possible image found on the results page."""

    thumbnail_url: str
    full_size_url: Optional[str] = None
    source_page_url: Optional[str] = None
    title: str = ""
    width: int = 0
    height: int = 0
    extraction_method: str = ""
    raw_data: Any = field(default=None, compare=False, repr=False)

    @property
    def identity_url(self) -> str:
        """URL used to deduplicate candidates across extraction strategies."""
        return self.full_size_url or self.thumbnail_url


@dataclass(frozen=True)
class ResolvedImage:
    """A candidate paired with the URL that should actually be downloaded."""

    candidate: ImageCandidate
    final_image_url: Optional[str]
    resolution_tier: str

    def __post_init__(self) -> None:
        if self.resolution_tier not in RESOLUTION_TIERS:
            raise ValueError(f"Unknown resolution tier {self.resolution_tier!r}")
        if (self.resolution_tier == TIER_FAILED) != (self.final_image_url is None):
            raise ValueError(
                "final_image_url must be absent exactly when the tier is 'failed'"
            )


@dataclass(frozen=True)
class ImageMetadata:
    """Measured properties of a downloaded image file."""

    width: int
    height: int
    format: str
    byte_size: int
    quality_score: int

    @property
    def megapixels(self) -> float:
        return self.width * self.height / 1_000_000


@dataclass(frozen=True)
class AcquisitionResult:
    """Outcome of processing one candidate in the acquisition loop."""

    candidate: ImageCandidate
    resolved: Optional[ResolvedImage] = None
    filepath: Optional[Path] = None
    metadata: Optional[ImageMetadata] = None
    success: bool = False
    kept: bool = False
    error: Optional[str] = None

    @property
    def resolution_tier(self) -> Optional[str]:
        return self.resolved.resolution_tier if self.resolved else None

    @property
    def final_image_url(self) -> Optional[str]:
        return self.resolved.final_image_url if self.resolved else None
