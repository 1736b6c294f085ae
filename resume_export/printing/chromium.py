"""
Chromium print engine.

Each call walks one request through
IDLE -> LAUNCHING -> PAGE_OPENED -> CONTENT_LOADING -> STYLE_SETTLING -> PRINTING -> DONE,
with FAILED reachable from every non-terminal state. Whatever happens, the
page is released (and its browser closed) before the call returns.
"""

import asyncio

import structlog

from ..config import settings
from ..exceptions import PdfGenerationError
from ..models import PrintOptions
from .base import PrintEngine, PrintStage
from .browser import LaunchPerRequestProvider, PageProvider, chromium_available

logger = structlog.get_logger()


class ChromiumPrintEngine(PrintEngine):
    """Prints HTML with headless Chromium through Playwright."""

    name = "chromium"

    def __init__(
        self,
        provider: PageProvider | None = None,
        *,
        navigation_timeout_ms: int | None = None,
        content_timeout_ms: int | None = None,
        settle_delay_ms: int | None = None,
        ready_selector: str | None = None,
    ):
        self.provider = provider or LaunchPerRequestProvider()
        self.navigation_timeout_ms = navigation_timeout_ms or settings.navigation_timeout_ms
        self.content_timeout_ms = content_timeout_ms or settings.content_timeout_ms
        self.settle_delay_ms = (
            settings.settle_delay_ms if settle_delay_ms is None else settle_delay_ms
        )
        self.ready_selector = ready_selector or settings.ready_selector

    async def generate_pdf(self, html: str, options: PrintOptions) -> bytes:
        log = logger.bind(
            engine=self.name,
            format=options.format,
            landscape=options.landscape,
            html_kb=round(len(html) / 1024),
        )
        stage = PrintStage.IDLE
        page = None

        def advance(next_stage: PrintStage) -> PrintStage:
            log.debug("Print stage", stage=next_stage.value)
            return next_stage

        try:
            stage = advance(PrintStage.LAUNCHING)
            page = await self.provider.acquire_page()

            stage = advance(PrintStage.PAGE_OPENED)
            page.set_default_navigation_timeout(self.navigation_timeout_ms)
            page.set_default_timeout(self.navigation_timeout_ms)

            stage = advance(PrintStage.CONTENT_LOADING)
            await page.set_content(html, wait_until="load", timeout=self.content_timeout_ms)
            await page.wait_for_load_state("networkidle", timeout=self.content_timeout_ms)

            stage = advance(PrintStage.STYLE_SETTLING)
            await self._settle(page)

            stage = advance(PrintStage.PRINTING)
            pdf_bytes = await page.pdf(
                format=options.format,
                landscape=options.landscape,
                print_background=options.print_background,
                margin=options.margin.model_dump(),
                scale=options.scale,
                display_header_footer=False,
                prefer_css_page_size=True,
            )

            advance(PrintStage.DONE)
            log.info("PDF generated", size=len(pdf_bytes))
            return pdf_bytes

        except asyncio.CancelledError:
            log.warning("Print cancelled", stage=stage.value)
            raise
        except Exception as e:
            failed_stage = stage
            advance(PrintStage.FAILED)
            log.error("PDF generation failed", stage=failed_stage.value, error=str(e))
            raise PdfGenerationError(str(e), stage=failed_stage.value) from e
        finally:
            if page is not None:
                await self.provider.release_page(page)

    async def _settle(self, page) -> None:
        """Give late stylesheets a chance to apply before printing."""
        if self.ready_selector:
            await page.wait_for_selector(
                self.ready_selector, state="attached", timeout=self.content_timeout_ms
            )
        elif self.settle_delay_ms > 0:
            await asyncio.sleep(self.settle_delay_ms / 1000)

    async def check_available(self) -> bool:
        return await chromium_available()
