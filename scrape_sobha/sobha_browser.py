"""
Sobha Portal Scraper - Browser Session

Thin async wrapper over one Playwright page. Pipeline components only
talk to this interface (navigate, wait, fill, type, click, evaluate,
content, screenshot, sleep), which keeps them testable against a
scripted fake session.

Author: sobha-scraper
"""

import asyncio
import time
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)
from playwright_stealth import Stealth

from .sobha_config import BrowserSettings
from .sobha_errors import NavigationError
from .sobha_scripts import ANTI_DETECTION_INIT
from runner.logging_setup import get_logger

module_logger = get_logger("sobha_browser")


class BrowserSession:
    """
    One browser, one context, one page, owned by a single scraping session.

    Usage:
        async with BrowserSession(settings.browser) as session:
            await session.navigate(url)
    """

    def __init__(self, settings: BrowserSettings = None, logger=None):
        """
        Args:
            settings: BrowserSettings (defaults if None)
            logger: Session logger (console logger if None)
        """
        self.settings = settings or BrowserSettings()
        self.logger = logger or module_logger
        self.stealth_applied = False

        self.playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

        Path(self.settings.screenshot_dir).mkdir(parents=True, exist_ok=True)

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Initialize Playwright browser, context and page."""
        self.playwright = await async_playwright().start()

        if self.settings.browser_type == "firefox":
            browser_type = self.playwright.firefox
        elif self.settings.browser_type == "webkit":
            browser_type = self.playwright.webkit
        else:
            browser_type = self.playwright.chromium

        self.browser = await browser_type.launch(
            headless=self.settings.headless,
            args=self.settings.browser_args,
        )
        self.context = await self.browser.new_context(
            viewport={"width": self.settings.viewport_width, "height": self.settings.viewport_height},
            user_agent=self.settings.user_agent,
            locale=self.settings.locale,
            timezone_id=self.settings.timezone,
        )
        self.context.set_default_timeout(self.settings.default_timeout)
        self.page = await self.context.new_page()

        self.logger.info(
            f"Browser started: {self.settings.browser_type} "
            f"(headless={self.settings.headless})"
        )

    async def close(self):
        """Release page, context, browser and driver. Safe to call twice."""
        try:
            if self.page:
                await self.page.close()
            if self.context:
                await self.context.close()
            if self.browser:
                await self.browser.close()
            if self.playwright:
                await self.playwright.stop()
        except PlaywrightError as e:
            self.logger.warning(f"Error closing browser: {e}")
        finally:
            self.page = None
            self.context = None
            self.browser = None
            self.playwright = None
            self.stealth_applied = False

    # Page state

    @property
    def url(self) -> str:
        return self.page.url if self.page else ""

    async def content(self) -> str:
        """Full HTML of the current page."""
        return await self.page.content()

    # Navigation and waiting

    async def navigate(self, url: str, timeout: int, wait_until: str = "domcontentloaded"):
        """
        Navigate to url.

        Args:
            url: Target URL
            timeout: Navigation timeout (ms)
            wait_until: Playwright load state to wait for

        Raises:
            NavigationError: If the page cannot be reached in time
        """
        try:
            await self.page.goto(url, wait_until=wait_until, timeout=timeout)
        except PlaywrightError as e:
            raise NavigationError(url, str(e)) from e

    async def wait_for(self, selector: str, timeout: int, state: str = "visible") -> bool:
        """
        Wait for selector to reach state.

        Returns:
            True if it did, False on timeout
        """
        try:
            await self.page.wait_for_selector(selector, state=state, timeout=timeout)
            return True
        except PlaywrightTimeoutError:
            return False

    async def wait_for_function(self, script: str, arg: Any = None, timeout: int = None) -> bool:
        """
        Wait until an in-page function returns a truthy value.

        Returns:
            True if it did, False on timeout
        """
        try:
            await self.page.wait_for_function(script, arg=arg, timeout=timeout)
            return True
        except PlaywrightTimeoutError:
            return False

    async def is_visible(self, selector: str) -> bool:
        try:
            return await self.page.locator(selector).first.is_visible()
        except PlaywrightError:
            return False

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Run an in-page function expression (see sobha_scripts)."""
        if arg is None:
            return await self.page.evaluate(script)
        return await self.page.evaluate(script, arg)

    async def sleep(self, seconds: float):
        if seconds > 0:
            await asyncio.sleep(seconds)

    # Interaction

    async def fill(self, selector: str, value: str, timeout: int = None):
        await self.page.locator(selector).first.fill(value, timeout=timeout)

    async def type(self, selector: str, text: str, delay_ms: float = 0, timeout: int = None):
        """Type text one character at a time with delay_ms between keys."""
        await self.page.locator(selector).first.press_sequentially(text, delay=delay_ms, timeout=timeout)

    async def click(self, selector: str, timeout: int = None):
        await self.page.locator(selector).first.click(timeout=timeout)

    async def click_at(self, position: Tuple[int, int]):
        """Click at viewport coordinates (x, y)."""
        await self.page.mouse.click(position[0], position[1])

    async def press(self, key: str):
        await self.page.keyboard.press(key)

    # Fingerprint

    async def set_viewport(self, width: int, height: int):
        await self.page.set_viewport_size({"width": width, "height": height})

    async def set_headers(self, headers: Dict[str, str]):
        await self.page.set_extra_http_headers(headers)

    async def apply_stealth(self):
        """
        Apply playwright-stealth and mask remaining automation markers.

        Init scripts accumulate on the page, so this runs once per session;
        later calls (login retries) are no-ops.
        """
        if self.stealth_applied:
            self.logger.debug("Stealth already applied to this page")
            return
        await Stealth().apply_stealth_async(self.page)
        await self.page.add_init_script(ANTI_DETECTION_INIT)
        self.stealth_applied = True

    # Diagnostics

    async def screenshot(self, name: str) -> Optional[str]:
        """
        Take a full-page screenshot for debugging.

        Returns:
            Path of the saved file, or None if capture failed
        """
        path = Path(self.settings.screenshot_dir) / f"{name}_{int(time.time())}.png"
        try:
            await self.page.screenshot(path=str(path), full_page=True)
        except PlaywrightError as e:
            self.logger.debug(f"Error taking screenshot: {e}")
            return None
        self.logger.debug(f"Screenshot saved: {path}")
        return str(path)
