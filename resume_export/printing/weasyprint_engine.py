"""
WeasyPrint print engine.

An alternative to Chromium for hosts without a browser. WeasyPrint has its
own layout engine, so it needs no settling phase, but it cannot run
scripts and only understands a subset of modern CSS.
"""

import asyncio
from pathlib import Path

import structlog

from ..exceptions import PdfGenerationError
from ..models import PrintOptions, css_page_size
from .base import PrintEngine, PrintStage

logger = structlog.get_logger()


def page_css(options: PrintOptions) -> str:
    """User stylesheet carrying the paper size and margins."""
    size = css_page_size(options.format, options.landscape)
    m = options.margin
    return (
        f"@page {{ size: {size}; "
        f"margin: {m.top} {m.right} {m.bottom} {m.left}; }}"
    )


class WeasyPrintEngine(PrintEngine):
    """Prints HTML with WeasyPrint in a worker thread."""

    name = "weasyprint"

    def __init__(self, base_url: str | None = None):
        self.base_url = base_url or str(Path.cwd())

    async def generate_pdf(self, html: str, options: PrintOptions) -> bytes:
        log = logger.bind(engine=self.name, format=options.format, landscape=options.landscape)
        try:
            pdf_bytes = await asyncio.to_thread(self._render, html, options)
        except Exception as e:
            log.error("PDF generation failed", error=str(e))
            raise PdfGenerationError(str(e), stage=PrintStage.PRINTING.value) from e

        log.info("PDF generated", size=len(pdf_bytes))
        return pdf_bytes

    def _render(self, html: str, options: PrintOptions) -> bytes:
        # Imported here: WeasyPrint needs Pango at import time
        from weasyprint import CSS, HTML

        # Document @page rules still win, as with Chromium's prefer_css_page_size
        stylesheets = [CSS(string=page_css(options))]
        return HTML(string=html, base_url=self.base_url).write_pdf(
            stylesheets=stylesheets,
            zoom=options.scale,
        )

    async def check_available(self) -> bool:
        try:
            import weasyprint  # noqa: F401
        except (ImportError, OSError) as e:
            logger.warning("WeasyPrint unavailable", error=str(e))
            return False
        return True
