"""Largest-image selection on a candidate's source page."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from .config import DISCOVERY_MIN_MEGAPIXELS, DISCOVERY_MIN_SIDE

logger = logging.getLogger("image_hunt.source_page")

CONTENT_SELECTORS = (
    ".main-image",
    ".hero-image",
    ".featured-image",
    ".post-image",
    ".content img",
    ".article img",
    "article img",
    ".gallery img",
    ".portfolio img",
    "[data-original]",
    "[data-src]",
)

_CHROME_PATTERN = re.compile(
    r"(?<![a-z0-9])(ads?|adverts?|advertisement|adserver|doubleclick|sponsor(?:ed)?|"
    r"banners?|logos?|navs?|navbar|navigation|sprites?|icons?|avatars?)(?![a-z0-9])",
    re.IGNORECASE,
)
_PLACEHOLDER_MARKERS = ("data:", "placeholder", "spinner", "blank.gif")

# Runs in the page. Returns one record per <img>, then one per <img> matched by
# each content selector with ``content`` set.
COLLECT_IMAGES_SCRIPT = """
(selectors) => {
  const describe = (img, content) => ({
    src: img.currentSrc || img.src || '',
    dataSrc: img.dataset.src || '',
    dataOriginal: img.dataset.original || '',
    dataLazy: img.dataset.lazy || '',
    width: img.width || 0,
    height: img.height || 0,
    naturalWidth: img.naturalWidth || 0,
    naturalHeight: img.naturalHeight || 0,
    className: typeof img.className === 'string' ? img.className : '',
    alt: img.alt || '',
    id: img.id || '',
    content: content,
  });
  const records = Array.from(document.querySelectorAll('img')).map((img) => describe(img, false));
  for (const selector of selectors) {
    let matches = [];
    try { matches = document.querySelectorAll(selector); } catch (e) { continue; }
    for (const el of matches) {
      if (el.tagName === 'IMG') records.push(describe(el, true));
    }
  }
  return records;
}
"""


@dataclass(frozen=True)
class SourceImage:
    """The winning image on a source page."""

    src: str
    width: int
    height: int
    from_content_area: bool = False

    @property
    def pixel_count(self) -> int:
        return self.width * self.height


def _int(record: Mapping[str, Any], key: str) -> int:
    try:
        return int(record.get(key) or 0)
    except (TypeError, ValueError):
        return 0


def _source_of(record: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = record.get(key)
        if value:
            return str(value)
    return ""


def looks_like_chrome(record: Mapping[str, Any], src: str) -> bool:
    """Detect advertising, navigation, and logo images by their attributes."""
    if any(marker in src.lower() for marker in _PLACEHOLDER_MARKERS):
        return True
    haystacks = (src, record.get("className") or "", record.get("alt") or "", record.get("id") or "")
    return any(_CHROME_PATTERN.search(str(text)) for text in haystacks)


def pick_largest_image(
    records: Iterable[Mapping[str, Any]],
    min_side: int = DISCOVERY_MIN_SIDE,
    min_megapixels: float = DISCOVERY_MIN_MEGAPIXELS,
) -> Optional[SourceImage]:
    """Select the largest qualifying image from collected page records.

    General images must be rendered at ``min_side`` or larger on both axes,
    must not look like page chrome, and must reach ``min_megapixels`` at their
    natural size. Images inside content containers use the same floors, skip
    the chrome check, and replace the current best whenever they are larger.
    """
    best: Optional[SourceImage] = None
    highest = 0
    general = []
    content = []
    for record in records:
        (content if record.get("content") else general).append(record)

    for record in general:
        if _int(record, "width") < min_side or _int(record, "height") < min_side:
            continue
        src = _source_of(record, "src", "dataSrc", "dataOriginal", "dataLazy")
        if not src or looks_like_chrome(record, src):
            continue
        width = _int(record, "naturalWidth") or _int(record, "width")
        height = _int(record, "naturalHeight") or _int(record, "height")
        pixels = width * height
        if pixels > highest and pixels / 1_000_000 >= min_megapixels and pixels > min_side * min_side:
            best = SourceImage(src=src, width=width, height=height)
            highest = pixels

    for record in content:
        src = _source_of(record, "src", "dataSrc", "dataOriginal")
        if not src or src.startswith("data:"):
            continue
        if _int(record, "width") < min_side or _int(record, "height") < min_side:
            continue
        width = _int(record, "naturalWidth") or _int(record, "width")
        height = _int(record, "naturalHeight") or _int(record, "height")
        pixels = width * height
        if pixels > highest and pixels / 1_000_000 >= min_megapixels:
            best = SourceImage(src=src, width=width, height=height, from_content_area=True)
            highest = pixels

    if best is not None:
        logger.info(
            "Found high-res candidate: %dx%d (%.1fMP)%s",
            best.width,
            best.height,
            best.pixel_count / 1_000_000,
            " [content area]" if best.from_content_area else "",
        )
    return best
