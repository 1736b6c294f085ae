"""
Headless browser process management.

Pages come from a PageProvider. The default provider launches a fresh
Chromium process for every page and tears it down on release, so no state
can bleed between requests. A pooled provider can replace it as long as it
keeps one page per request.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from playwright.async_api import async_playwright

from ..config import settings

logger = structlog.get_logger()

# Deterministic glyph rendering across machines, and cross-origin fonts/images
RENDER_ARGS = ["--font-render-hinting=none", "--disable-web-security"]

# Only needed where the execution environment cannot provide a sandbox
SANDBOX_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]


def browser_args(disable_sandbox: bool) -> list[str]:
    """Chromium command-line flags for export rendering."""
    return (SANDBOX_ARGS if disable_sandbox else []) + RENDER_ARGS


class PageProvider(ABC):
    """Hands out browser pages scoped to a single request."""

    @abstractmethod
    async def acquire_page(self):
        """Return a fresh page owned by the caller until released."""

    @abstractmethod
    async def release_page(self, page) -> None:
        """Give the page back. Must not raise."""

    @asynccontextmanager
    async def page(self):
        """Acquire a page and release it on every exit path."""
        page = await self.acquire_page()
        try:
            yield page
        finally:
            await self.release_page(page)


class LaunchPerRequestProvider(PageProvider):
    """Launches one Chromium process per page."""

    def __init__(
        self,
        *,
        headless: bool | None = None,
        executable_path: str | None = None,
        disable_sandbox: bool | None = None,
    ):
        self.headless = settings.browser_headless if headless is None else headless
        self.executable_path = executable_path or settings.browser_executable_path
        self.disable_sandbox = (
            settings.disable_sandbox if disable_sandbox is None else disable_sandbox
        )
        self._owners = {}

    async def acquire_page(self):
        playwright = await async_playwright().start()
        browser = None
        try:
            launch_kwargs = {
                "headless": self.headless,
                "args": browser_args(self.disable_sandbox),
            }
            if self.executable_path:
                launch_kwargs["executable_path"] = self.executable_path

            logger.info("Launching browser", headless=self.headless)
            browser = await playwright.chromium.launch(**launch_kwargs)
            page = await browser.new_page()
        except BaseException:
            await self._shutdown(browser, playwright)
            raise

        self._owners[id(page)] = (browser, playwright)
        logger.debug("Browser page opened")
        return page

    async def release_page(self, page) -> None:
        browser, playwright = self._owners.pop(id(page), (None, None))
        await self._shutdown(browser, playwright)

    @staticmethod
    async def _shutdown(browser, playwright) -> None:
        """Close the browser and driver; failures are logged, never raised."""
        if browser is not None:
            try:
                logger.debug("Closing browser")
                await browser.close()
                logger.info("Browser closed")
            except Exception as e:
                logger.error("Error closing browser", error=str(e))
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                logger.error("Error stopping playwright", error=str(e))


async def chromium_available(executable_path: str | None = None) -> bool:
    """Check that a Chromium executable is installed without launching it."""
    executable_path = executable_path or settings.browser_executable_path
    if executable_path:
        return Path(executable_path).exists()
    try:
        async with async_playwright() as playwright:
            return Path(playwright.chromium.executable_path).exists()
    except Exception as e:
        logger.warning("Chromium availability check failed", error=str(e))
        return False
