"""URL cleaning, classification, and search URL construction."""

from __future__ import annotations

import logging
import re
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import urlencode, urlparse

from .errors import InvalidUrl

logger = logging.getLogger("image_hunt.urls")

SEARCH_ENDPOINT = "https://www.google.com/search"

THUMBNAIL_MARKER = "encrypted-tbn"
THUMBNAIL_URL_PATTERN = re.compile(r"^https?://[^/\s\"]*encrypted-tbn", re.IGNORECASE)
IMAGE_EXTENSION_PATTERN = re.compile(r"\.(?:jpe?g|png|webp)(?![a-z0-9])", re.IGNORECASE)
IMAGE_URL_PATTERN = re.compile(
    r"https?://[^\s\"']+?\.(?:jpe?g|png|webp)(?![a-z0-9])[^\s\"']*", re.IGNORECASE
)

_ESCAPED_SEQUENCES = (
    ("\\u003d", "="),
    ("\\u003D", "="),
    ("\\u0026", "&"),
)
_ALLOWED_SCHEMES = {"http", "https"}
_DOWNLOAD_EXTENSIONS = {"jpg", "jpeg", "png", "webp", "gif"}


def parse_url(raw_url: str) -> str:
    """Unescape and validate a raw URL string, raising InvalidUrl on failure."""
    if not isinstance(raw_url, str):
        raise InvalidUrl(f"expected a string, got {type(raw_url).__name__}")
    cleaned = raw_url.strip()
    for escaped, replacement in _ESCAPED_SEQUENCES:
        cleaned = cleaned.replace(escaped, replacement)
    if not cleaned:
        raise InvalidUrl("empty URL")
    if any(ch.isspace() for ch in cleaned):
        raise InvalidUrl("URL contains whitespace")
    try:
        parsed = urlparse(cleaned)
        # Accessing port validates it.
        parsed.port
    except ValueError as exc:
        raise InvalidUrl(str(exc)) from exc
    if parsed.scheme.lower() not in _ALLOWED_SCHEMES:
        raise InvalidUrl(f"unsupported scheme {parsed.scheme!r}")
    if not parsed.hostname:
        raise InvalidUrl("missing host")
    return cleaned


def clean_url(raw_url: Optional[str]) -> Optional[str]:
    """Return a usable absolute URL, or None when the input cannot be used.

    Malformed URLs are routine on results pages, so failures are logged at
    warning level and never raised.
    """
    if raw_url is None or raw_url == "":
        return None
    try:
        return parse_url(raw_url)
    except InvalidUrl as exc:
        logger.warning("Invalid URL format %r: %s", str(raw_url)[:120], exc)
        return None


def is_thumbnail_url(url: Optional[str]) -> bool:
    """Check whether a URL points at the search engine's thumbnail CDN."""
    return bool(url) and bool(THUMBNAIL_URL_PATTERN.match(url))


def looks_like_image_url(value: str) -> bool:
    """Check whether an absolute URL mentions an image file extension."""
    return value.startswith("http") and bool(IMAGE_EXTENSION_PATTERN.search(value))


def get_domain(url: str) -> str:
    try:
        return urlparse(url).hostname or "unknown"
    except ValueError:
        return "unknown"


def image_extension(image_url: str) -> str:
    """Pick a file extension for a download based on the URL path."""
    try:
        suffix = PurePosixPath(urlparse(image_url).path).suffix.lower().lstrip(".")
    except ValueError:
        return "jpg"
    return suffix if suffix in _DOWNLOAD_EXTENSIONS else "jpg"


def build_search_url(
    search_term: str,
    safe_search: str = "moderate",
    size: str = "large",
    image_type: str = "photo",
) -> str:
    """Build the image-search results URL for a term and filter settings."""
    tbs = f"isz:{size}"
    if image_type and image_type != "any":
        tbs += f",itp:{image_type}"
    params = {
        "q": search_term,
        "tbm": "isch",
        "safe": safe_search,
        "tbs": tbs,
        "hl": "en-GB",
        "gl": "gb",
    }
    return f"{SEARCH_ENDPOINT}?{urlencode(params)}"
