"""
Browser Session - Lazily launched, shared Chromium process
Pages are opened through PageAcquirer with a fixed user agent and viewport
"""

import asyncio
import logging
from typing import Callable, Optional

from playwright.async_api import (
    Browser,
    Error as PlaywrightError,
    Page,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .errors import NavigationFailureError, NavigationTimeoutError, NotInitializedError
from .models import SpiderConfig

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
]


class BrowserSession:
    """Owns one Playwright driver and one Chromium process."""

    def __init__(self, config: SpiderConfig, playwright_factory: Callable = async_playwright):
        self.config = config
        self._playwright_factory = playwright_factory
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._launching: Optional[asyncio.Task] = None
        self.launch_count = 0

    @property
    def is_started(self) -> bool:
        return self._browser is not None

    async def ensure_started(self) -> Browser:
        """Launch the browser once; concurrent callers share the same launch."""
        if self._browser is not None:
            return self._browser
        if self._launching is None:
            self._launching = asyncio.ensure_future(self._launch())
            self._launching.add_done_callback(self._clear_launching)
        # Shielded so a cancelled waiter does not abort the launch for the others
        return await asyncio.shield(self._launching)

    def _clear_launching(self, task: asyncio.Task) -> None:
        if self._launching is task:
            self._launching = None

    async def _launch(self) -> Browser:
        logger.info("Starting browser...")
        playwright = await self._playwright_factory().start()
        try:
            browser = await playwright.chromium.launch(
                headless=self.config.headless,
                args=LAUNCH_ARGS,
                timeout=self.config.launch_timeout_ms,
            )
        except Exception:
            await playwright.stop()
            raise
        self._playwright = playwright
        self._browser = browser
        self.launch_count += 1
        logger.info("Browser started successfully")
        return browser

    async def new_page(self, **options) -> Page:
        if self._browser is None:
            raise NotInitializedError("Browser session has not been started")
        return await self._browser.new_page(**options)

    async def shutdown(self) -> None:
        """Close the browser and driver. Safe to call repeatedly."""
        launching = self._launching
        if launching is not None:
            try:
                await asyncio.shield(launching)
            except Exception:
                logger.debug("Pending browser launch failed during shutdown", exc_info=True)

        browser, playwright = self._browser, self._playwright
        self._browser = None
        self._playwright = None
        if browser is None and playwright is None:
            return
        try:
            if browser is not None:
                await browser.close()
        except Exception:
            logger.debug("Browser close failed", exc_info=True)
        try:
            if playwright is not None:
                await playwright.stop()
        except Exception:
            logger.debug("Playwright stop failed", exc_info=True)
        logger.info("Browser closed")


class PageAcquirer:
    """Opens configured pages on a BrowserSession."""

    def __init__(self, session: BrowserSession, config: SpiderConfig):
        self.session = session
        self.config = config

    async def acquire(self) -> Page:
        await self.session.ensure_started()
        page = await self.session.new_page(
            user_agent=self.config.user_agent,
            viewport={"width": self.config.viewport_width, "height": self.config.viewport_height},
        )
        page.set_default_timeout(self.config.page_timeout_ms)

        if self.config.use_stealth:
            try:
                from playwright_stealth.stealth import Stealth
                await Stealth().apply_stealth_async(page)
                logger.info("Playwright stealth enabled")
            except Exception as exc:
                logger.warning("Failed to enable stealth mode: %s", exc)

        return page


async def goto(page: Page, url: str, *, timeout_ms: int, wait_until: str = "networkidle") -> None:
    """Navigate, translating Playwright failures into spider errors."""
    try:
        await page.goto(url, wait_until=wait_until, timeout=timeout_ms)
    except PlaywrightTimeoutError as exc:
        raise NavigationTimeoutError(f"Timed out after {timeout_ms}ms loading {url}") from exc
    except PlaywrightError as exc:
        raise NavigationFailureError(f"Failed to load {url}: {exc}") from exc


async def close_quietly(page: Optional[Page]) -> None:
    if page is None:
        return
    try:
        await page.close()
    except Exception:
        logger.debug("Page close failed", exc_info=True)
