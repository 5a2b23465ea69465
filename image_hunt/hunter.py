"""High-level orchestration for searching, resolving, and acquiring images."""

from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import async_playwright

from .acquisition import AcquisitionLoop, AcquisitionOutcome
from .browser import BrowserSession
from .config import HuntConfig
from .extraction import CandidateExtractor, build_strategies
from .fetch import HttpClient, pick_agent
from .report import write_report
from .resolver import ResolutionStrategist
from .storage import ensure_directory
from .urls import build_search_url

logger = logging.getLogger("image_hunt")


async def run_hunt(
    search_term: str,
    config: HuntConfig,
    target: Optional[int] = None,
) -> AcquisitionOutcome:
    """Search for a term and keep up to ``target`` images that meet the standard.

    Browser launch, the results page, and the storage root are shared
    infrastructure; failures there propagate. Everything per candidate is
    recorded in the returned outcome instead.
    """
    target = config.max_results if target is None else target
    quota = max(target * max(config.candidate_multiplier, 1), target)
    ensure_directory(config.download_dir)
    logger.info("Hunting images for %r (target: %d images)", search_term, target)

    http = HttpClient(user_agents=config.user_agents)
    try:
        async with async_playwright() as playwright:
            async with BrowserSession(playwright, config) as browser:
                search_url = build_search_url(
                    search_term,
                    safe_search=config.safe_search,
                    size=config.size,
                    image_type=config.image_type,
                )
                state = await browser.open_search(
                    search_url, quota, user_agent=pick_agent(http.user_agents, http.rng)
                )
                extractor = CandidateExtractor(build_strategies(config.strategy_order))
                candidates = extractor.extract(state, quota)
                if not candidates:
                    logger.warning("No image candidates found for %r", search_term)

                resolver = ResolutionStrategist(http, browser, config)
                loop = AcquisitionLoop(config, resolver, http)
                outcome = await loop.acquire(candidates, search_term, target)
    finally:
        http.close()

    write_report(outcome)
    return outcome
