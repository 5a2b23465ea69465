"""Playwright-backed browser session used for search and source pages."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import urljoin

from playwright.async_api import (
    Browser,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
)

from .config import HuntConfig
from .errors import NavigationError
from .extraction import PageState
from .source_page import COLLECT_IMAGES_SCRIPT, CONTENT_SELECTORS, pick_largest_image
from .urls import get_domain

logger = logging.getLogger("image_hunt.browser")

CONSENT_SELECTOR = 'button[id*="accept"], button[id*="consent"], #L2AGLb'
SHOW_MORE_SELECTOR = 'input[value="Show more results"], .mye4qd'
THUMBNAIL_SELECTOR = 'img[src*="encrypted-tbn"]'
STRUCTURED_DATA_SCRIPT = "() => (window.google && window.google.ldi) || {}"
VIEWPORT = {"width": 1920, "height": 1080}


class BrowserSession:
    """One Chromium instance whose pages are used strictly one at a time."""

    def __init__(self, playwright: Playwright, config: HuntConfig) -> None:
        self.playwright = playwright
        self.config = config
        self._browser: Optional[Browser] = None

    async def start(self) -> None:
        if self._browser is not None:
            return
        logger.info("Launching browser")
        self._browser = await self.playwright.chromium.launch(
            headless=self.config.headless,
            args=["--disable-blink-features=AutomationControlled"],
        )

    async def close(self) -> None:
        if self._browser is None:
            return
        await self._browser.close()
        self._browser = None
        logger.info("Browser closed")

    async def __aenter__(self) -> "BrowserSession":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def new_page(self, user_agent: Optional[str] = None) -> Page:
        if self._browser is None:
            raise RuntimeError("Browser session has not been started")
        page = await self._browser.new_page(user_agent=user_agent, viewport=VIEWPORT)
        await page.set_extra_http_headers({"Accept-Language": "en-GB,en;q=0.9"})
        return page

    async def navigate(self, page: Page, url: str, timeout: float) -> None:
        """Load ``url`` in ``page``, raising NavigationError on timeout or failure."""
        try:
            await page.goto(url, wait_until="networkidle", timeout=timeout * 1000)
        except PlaywrightTimeoutError as exc:
            raise NavigationError(f"Timed out loading {url}") from exc
        except PlaywrightError as exc:
            raise NavigationError(f"Failed to load {url}: {exc}") from exc

    async def open_search(
        self, search_url: str, quota: int, user_agent: Optional[str] = None
    ) -> PageState:
        """Load the results page, scroll until ``quota`` thumbnails, and snapshot it."""
        page = await self.new_page(user_agent)
        try:
            await self.navigate(page, search_url, self.config.search_timeout)
            await self._accept_cookie_consent(page)
            logger.info("Reached search results")
            try:
                await page.wait_for_selector("img", timeout=10_000)
            except PlaywrightTimeoutError:
                logger.warning("No images rendered on the results page")
            await self._scroll_for_results(page, quota)
            html = await page.content()
            structured: Dict[str, Any] = await page.evaluate(STRUCTURED_DATA_SCRIPT) or {}
            return PageState(url=page.url, html=html, structured_data=structured)
        finally:
            await page.close()

    async def _accept_cookie_consent(self, page: Page) -> None:
        try:
            button = await page.wait_for_selector(CONSENT_SELECTOR, timeout=5_000)
        except PlaywrightTimeoutError:
            logger.info("No cookie consent dialog found")
            return
        if button is not None:
            await button.click()
            await asyncio.sleep(2)
            logger.info("Cookie consent accepted")

    async def _scroll_for_results(self, page: Page, target: int) -> None:
        last_count = 0
        for attempt in range(1, self.config.max_scroll_attempts + 1):
            await page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")
            await asyncio.sleep(2)
            count = await page.locator(THUMBNAIL_SELECTOR).count()
            if count >= target:
                logger.info("Loaded %d thumbnails (target: %d)", count, target)
                return
            if count == last_count:
                try:
                    await page.click(SHOW_MORE_SELECTOR, timeout=3_000)
                except (PlaywrightTimeoutError, PlaywrightError):
                    logger.info("No more results available")
                    return
                await asyncio.sleep(3)
            last_count = count
            logger.info("Scroll attempt %d: %d thumbnails loaded", attempt, count)

    async def find_largest_image(
        self, url: str, user_agent: Optional[str] = None
    ) -> Optional[str]:
        """Navigate to a source page and return its largest qualifying image URL."""
        logger.info("Attempting source navigation: %s", get_domain(url))
        try:
            page = await self.new_page(user_agent)
        except PlaywrightError as exc:
            raise NavigationError(f"Could not open a page for {url}: {exc}") from exc
        try:
            await self.navigate(page, url, self.config.navigation_timeout)
            try:
                records = await page.evaluate(COLLECT_IMAGES_SCRIPT, list(CONTENT_SELECTORS))
            except PlaywrightError as exc:
                raise NavigationError(f"Image scan failed on {url}: {exc}") from exc
            base_url = page.url
        finally:
            await page.close()

        best = pick_largest_image(records or [])
        if best is None:
            return None
        return urljoin(base_url, best.src)
