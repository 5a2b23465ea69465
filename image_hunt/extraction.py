"""Candidate extraction from a rendered image-search results page.

The results page exposes no stable API, so candidates are recovered from three
independent representations of the same data, tried in priority order:

* the structured-data mapping the page keeps in script scope
  (``window.google.ldi``), keyed by an internal image id;
* ``imgres`` result anchors whose query string carries the real image URL,
  the source page, and the declared dimensions;
* free-form inline script text, where thumbnail URLs and original image URLs
  are paired by proximity.

Each representation is handled by an :class:`ExtractionStrategy`; the
:class:`CandidateExtractor` composes them and enforces the quota and
deduplication.
"""

from __future__ import annotations

import json
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from functools import cached_property
from typing import (
    AbstractSet,
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
)
from urllib.parse import parse_qs, urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from .config import (
    DEFAULT_STRATEGY_ORDER,
    DISCOVERY_MIN_MEGAPIXELS,
    DISCOVERY_MIN_SIDE,
)
from .errors import ExtractionParseError
from .models import ImageCandidate
from .urls import (
    IMAGE_URL_PATTERN,
    THUMBNAIL_MARKER,
    is_thumbnail_url,
    looks_like_image_url,
)

logger = logging.getLogger("image_hunt.extraction")

SCRIPT_WINDOW_CHARS = 500
_SCRIPT_THUMBNAIL_PATTERN = re.compile(r'"(https?://[^"/]*encrypted-tbn[^"]+)"', re.IGNORECASE)
_RESULT_CONTAINER_CLASSES = ("isv-r", "rg_bx")


@dataclass
class PageState:
    """Snapshot of a rendered results page."""

    url: str
    html: str = ""
    structured_data: Mapping[str, Any] = field(default_factory=dict)

    @cached_property
    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.html or "", "html.parser")


class ExtractionStrategy:
    """One way of turning page state into image candidates.

    Subclasses yield candidates lazily from :meth:`iter_candidates`;
    :meth:`try_extract` drops identities already taken by earlier strategies
    before counting against ``remaining``.
    """

    name = "base"

    def iter_candidates(self, state: PageState) -> Iterator[ImageCandidate]:
        raise NotImplementedError

    def try_extract(
        self,
        state: PageState,
        remaining: int,
        seen: AbstractSet[str] = frozenset(),
    ) -> List[ImageCandidate]:
        candidates: List[ImageCandidate] = []
        taken: Set[str] = set()
        if remaining <= 0:
            return candidates
        for candidate in self.iter_candidates(state):
            key = candidate.identity_url
            if key in seen or key in taken:
                continue
            taken.add(key)
            candidates.append(candidate)
            if len(candidates) >= remaining:
                break
        return candidates



def _as_int(value: Any) -> int:
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


def parse_structured_entry(value: Any) -> ImageCandidate:
    """Decode one structured-data entry into a candidate.

    Entries are JSON strings (or already decoded lists) whose second element is
    a tuple of ``[thumbnail, width, height, full_or_alternate, ..., title, ...]``.
    """
    try:
        data = json.loads(value) if isinstance(value, str) else value
    except ValueError as exc:
        raise ExtractionParseError(f"entry is not valid JSON: {exc}") from exc
    if not isinstance(data, (list, tuple)) or len(data) < 2:
        raise ExtractionParseError("entry has no image tuple")
    info = data[1]
    if not isinstance(info, (list, tuple)) or not info:
        raise ExtractionParseError("image tuple is not a list")

    thumbnail_url = info[0] if isinstance(info[0], str) else None
    if not is_thumbnail_url(thumbnail_url):
        raise ExtractionParseError("thumbnail does not match the thumbnail CDN")

    alternate_url = info[3] if len(info) > 3 and isinstance(info[3], str) else None
    original_url: Optional[str] = None
    source_page_url: Optional[str] = None
    for item in info[4:]:
        if not isinstance(item, str) or not item.startswith("http"):
            continue
        if THUMBNAIL_MARKER in item or "google" in item:
            continue
        if looks_like_image_url(item):
            original_url = item
            break
        if source_page_url is None:
            source_page_url = item

    title = info[6] if len(info) > 6 and isinstance(info[6], str) else ""
    return ImageCandidate(
        thumbnail_url=thumbnail_url,
        full_size_url=original_url or alternate_url,
        source_page_url=source_page_url,
        title=title,
        width=_as_int(info[1]) if len(info) > 1 else 0,
        height=_as_int(info[2]) if len(info) > 2 else 0,
        extraction_method=StructuredDataStrategy.name,
        raw_data=info,
    )


class StructuredDataStrategy(ExtractionStrategy):
    """Read the image-key → tuple mapping the page keeps in script scope."""

    name = "structured-data"

    def iter_candidates(self, state: PageState) -> Iterator[ImageCandidate]:
        for key, value in state.structured_data.items():
            try:
                yield parse_structured_entry(value)
            except ExtractionParseError as exc:
                logger.debug("Skipping structured-data entry %s: %s", key, exc)


class ResultAnchorStrategy(ExtractionStrategy):
    """Parse ``imgres`` anchors whose query string carries the real image URL."""

    name = "result-anchor"

    def __init__(
        self,
        min_side: int = DISCOVERY_MIN_SIDE,
        min_megapixels: float = DISCOVERY_MIN_MEGAPIXELS,
    ) -> None:
        self.min_side = min_side
        self.min_megapixels = min_megapixels

    def iter_candidates(self, state: PageState) -> Iterator[ImageCandidate]:
        for link in state.soup.select('a[href*="imgres"]'):
            candidate = self._parse_anchor(link, state.url)
            if candidate is not None:
                yield candidate

    def _parse_anchor(self, link: Tag, base_url: str) -> Optional[ImageCandidate]:
        href = urljoin(base_url, link.get("href", ""))
        try:
            params = parse_qs(urlparse(href).query)
        except ValueError as exc:
            logger.warning("Failed to parse imgres link %s: %s", href[:80], exc)
            return None

        image_url = _first(params, "imgurl")
        if not image_url or not image_url.startswith("http"):
            return None
        width = _as_int(_first(params, "w"))
        height = _as_int(_first(params, "h"))
        if width <= self.min_side or height <= self.min_side:
            logger.info(
                "Rejected result %dx%d: below %dx%d minimum",
                width,
                height,
                self.min_side,
                self.min_side,
            )
            return None
        megapixels = width * height / 1_000_000
        if megapixels < self.min_megapixels:
            logger.info(
                "Rejected result %dx%d (%.2fMP): below %.1fMP",
                width,
                height,
                megapixels,
                self.min_megapixels,
            )
            return None

        thumbnail_url = self._find_thumbnail(link)
        logger.debug(
            "Found result %dx%d (%.1fMP) %s", width, height, megapixels, image_url[:60]
        )
        return ImageCandidate(
            thumbnail_url=thumbnail_url or image_url,
            full_size_url=image_url,
            source_page_url=_first(params, "imgrefurl"),
            title=link.get("aria-label", "") or "",
            width=width,
            height=height,
            extraction_method=self.name,
            raw_data={"tbnid": _first(params, "tbnid"), "href": href},
        )

    @staticmethod
    def _find_thumbnail(link: Tag) -> Optional[str]:
        container = link.find_parent(
            lambda tag: tag.has_attr("data-ved")
            or any(cls in _RESULT_CONTAINER_CLASSES for cls in tag.get("class", []))
        )
        scopes = [scope for scope in (container, link.parent, link) if scope is not None]
        for scope in scopes:
            for img in scope.find_all("img"):
                src = img.get("src") or ""
                if is_thumbnail_url(src):
                    return src
        return None


class InlineScriptStrategy(ExtractionStrategy):
    """Pair thumbnail URLs with nearby image URLs found in inline scripts."""

    name = "inline-script"

    def __init__(self, window: int = SCRIPT_WINDOW_CHARS) -> None:
        self.window = window

    def iter_candidates(self, state: PageState) -> Iterator[ImageCandidate]:
        for script in state.soup.find_all("script"):
            content = script.string or script.get_text() or ""
            if THUMBNAIL_MARKER not in content or "http" not in content:
                continue
            for match in _SCRIPT_THUMBNAIL_PATTERN.finditer(content):
                start = max(0, match.start() - self.window)
                surrounding = content[start : match.start() + self.window]
                yield ImageCandidate(
                    thumbnail_url=match.group(1),
                    full_size_url=self._pick_original(surrounding),
                    extraction_method=self.name,
                )

    @staticmethod
    def _pick_original(text: str) -> Optional[str]:
        """Choose the longest image URL near a thumbnail as the likely original."""
        best: Optional[str] = None
        for url in IMAGE_URL_PATTERN.findall(text):
            if THUMBNAIL_MARKER in url:
                continue
            if best is None or len(url) > len(best):
                best = url
        return best


def _first(params: Dict[str, List[str]], key: str) -> Optional[str]:
    values = params.get(key)
    return values[0] if values else None


STRATEGIES = {
    StructuredDataStrategy.name: StructuredDataStrategy,
    ResultAnchorStrategy.name: ResultAnchorStrategy,
    InlineScriptStrategy.name: InlineScriptStrategy,
}


def build_strategies(order: Iterable[str] = DEFAULT_STRATEGY_ORDER) -> List[ExtractionStrategy]:
    """Instantiate strategies by name, preserving the given priority order."""
    strategies: List[ExtractionStrategy] = []
    for name in order:
        try:
            strategies.append(STRATEGIES[name]())
        except KeyError as exc:
            raise ValueError(
                f"Unknown extraction strategy {name!r}; expected one of {sorted(STRATEGIES)}"
            ) from exc
    return strategies


class CandidateExtractor:
    """Run extraction strategies in priority order until the quota is filled."""

    def __init__(self, strategies: Optional[Sequence[ExtractionStrategy]] = None) -> None:
        self.strategies = list(strategies) if strategies is not None else build_strategies()

    def extract(self, state: PageState, quota: int) -> List[ImageCandidate]:
        candidates: List[ImageCandidate] = []
        seen: Set[str] = set()
        for strategy in self.strategies:
            if len(candidates) >= quota:
                break
            found = strategy.try_extract(state, quota - len(candidates), seen)
            logger.debug("%s produced %d new candidates", strategy.name, len(found))
            seen.update(candidate.identity_url for candidate in found)
            candidates.extend(found)

        self._log_summary(candidates)
        return candidates

    @staticmethod
    def _log_summary(candidates: List[ImageCandidate]) -> None:
        methods = Counter(candidate.extraction_method for candidate in candidates)
        with_full_size = sum(
            1
            for c in candidates
            if c.full_size_url and c.full_size_url != c.thumbnail_url
        )
        with_source = sum(1 for c in candidates if c.source_page_url)
        logger.info(
            "Extracted %d candidates %s (%d with full-size URLs, %d with source pages)",
            len(candidates),
            dict(methods),
            with_full_size,
            with_source,
        )
