"""Upgrade a candidate's thumbnail reference to the best downloadable URL."""

from __future__ import annotations

import logging
from typing import Optional

from .config import HuntConfig
from .errors import NavigationError, NetworkFailure, ResolutionFailure
from .fetch import HttpClient, pick_agent
from .models import (
    TIER_ENHANCED,
    TIER_FAILED,
    TIER_REAL_FULLSIZE,
    TIER_THUMBNAIL,
    ImageCandidate,
    ResolvedImage,
)
from .urls import clean_url, get_domain

logger = logging.getLogger("image_hunt.resolver")


class ResolutionStrategist:
    """Try direct full-size URLs, then source pages, then the thumbnail.

    ``browser`` may be None, in which case source-page navigation is skipped.
    The navigation budget is shared by every candidate resolved through this
    instance and is spent per navigation attempt.
    """

    def __init__(self, http: HttpClient, browser, config: HuntConfig) -> None:
        self.http = http
        self.browser = browser
        self.config = config
        self.navigations_left = max(config.max_source_navigations, 0)

    async def resolve(self, candidate: ImageCandidate) -> ResolvedImage:
        thumbnail_url = clean_url(candidate.thumbnail_url)
        if not thumbnail_url:
            logger.error("No valid thumbnail URL available")
            return ResolvedImage(candidate, None, TIER_FAILED)

        full_size_url = clean_url(candidate.full_size_url)
        if full_size_url and full_size_url != thumbnail_url:
            try:
                return ResolvedImage(
                    candidate, self._check_full_size(full_size_url), TIER_REAL_FULLSIZE
                )
            except ResolutionFailure as exc:
                logger.warning("%s, trying source page", exc)

        if candidate.source_page_url:
            try:
                enhanced_url = await self._search_source_page(
                    candidate.source_page_url, thumbnail_url
                )
                return ResolvedImage(candidate, enhanced_url, TIER_ENHANCED)
            except ResolutionFailure as exc:
                logger.info("%s", exc)

        return ResolvedImage(candidate, thumbnail_url, TIER_THUMBNAIL)

    def _check_full_size(self, url: str) -> str:
        try:
            status = self.http.head_check(url, timeout=self.config.head_timeout)
        except NetworkFailure as exc:
            raise ResolutionFailure(f"Full-size URL failed ({exc})") from exc
        if not 200 <= status < 300:
            raise ResolutionFailure(f"Full-size URL failed ({status})")
        logger.info("Using real full-size URL %s", url[:80])
        return url

    async def _search_source_page(self, source_url: str, thumbnail_url: str) -> str:
        if self.browser is None:
            raise ResolutionFailure("Source navigation unavailable")
        if self.navigations_left <= 0:
            raise ResolutionFailure("Source navigation budget exhausted")
        self.navigations_left -= 1

        try:
            found: Optional[str] = await self.browser.find_largest_image(
                source_url, user_agent=pick_agent(self.http.user_agents, self.http.rng)
            )
        except NavigationError as exc:
            raise ResolutionFailure(
                f"Source page navigation failed on {get_domain(source_url)}: {exc}"
            ) from exc

        enhanced_url = clean_url(found)
        if not enhanced_url or enhanced_url == thumbnail_url:
            raise ResolutionFailure(
                f"No qualifying image on source page {get_domain(source_url)}"
            )
        logger.info("Found enhanced resolution from %s", get_domain(source_url))
        return enhanced_url
