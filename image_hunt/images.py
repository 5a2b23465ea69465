"""Image inspection and quality scoring utilities."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from filetype import guess
from PIL import Image, UnidentifiedImageError

from .errors import DecodeError
from .models import ImageMetadata

logger = logging.getLogger("image_hunt.images")

HEADER_BYTES = 261
LOSSLESS_FORMATS = {"png", "bmp", "tiff", "tif"}


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def _format_points(image_format: str) -> int:
    fmt = image_format.lower()
    if fmt in LOSSLESS_FORMATS:
        return 30
    if fmt in ("jpg", "jpeg"):
        return 25
    if fmt == "webp":
        return 20
    return 10


def assess_quality(width: int, height: int, image_format: str, byte_size: int) -> int:
    """Score an image from 0 to 100 for ranking kept downloads.

    The score is the sum of three tiers: resolution (up to 40), bytes per
    pixel as a proxy for compression quality (up to 30), and format (up to 30,
    lossless > high-fidelity lossy > lossy web format > other).
    """
    pixels = width * height
    if pixels <= 0:
        return 0
    bytes_per_pixel = byte_size / pixels

    if pixels > 2_000_000:
        score = 40
    elif pixels > 1_000_000:
        score = 30
    elif pixels > 500_000:
        score = 20
    else:
        score = 10

    if bytes_per_pixel > 3:
        score += 30
    elif bytes_per_pixel > 1.5:
        score += 20
    else:
        score += 10

    score += _format_points(image_format)
    return min(score, 100)


def inspect_image(path: Path) -> ImageMetadata:
    """Measure a downloaded file, raising DecodeError if it is not an image."""
    try:
        with path.open("rb") as handle:
            header = handle.read(HEADER_BYTES)
        with Image.open(path) as img:
            width, height = img.size
            pil_format = (img.format or "").lower()
        byte_size = path.stat().st_size
    except (UnidentifiedImageError, OSError) as exc:
        raise DecodeError(f"Cannot read image {path}: {exc}") from exc

    image_format = detect_image_format(header) or pil_format or "unknown"
    if image_format == "jpeg":
        image_format = "jpg"
    return ImageMetadata(
        width=width,
        height=height,
        format=image_format,
        byte_size=byte_size,
        quality_score=assess_quality(width, height, image_format, byte_size),
    )
