"""
Client-side export facade.

Drives a live page holding the rendered résumé:

- ``export_to_pdf`` rasterizes the printable element (canvas/SVG or
  DOM-clone path) and saves a raster PDF
- ``submit_print_request`` hands a self-contained document to the print
  server and saves the returned PDF
"""

from contextlib import asynccontextmanager
from pathlib import Path

import requests
import structlog

from .config import settings
from .exceptions import ExportError, PdfGenerationError, RasterizationError
from .models import PrintRequest
from .pdf import build_raster_pdf
from .printing.browser import LaunchPerRequestProvider, PageProvider
from .rasterizers import get_rasterizer, measure_target

logger = structlog.get_logger()

ALERT_SCRIPT = "(message) => window.alert(message)"

__all__ = [
    "measure_target",
    "build_raster_pdf",
    "export_to_pdf",
    "open_document",
    "submit_print_request",
]


async def _alert(page, message: str) -> None:
    """Tell the user in-page. Never raises."""
    try:
        await page.evaluate(ALERT_SCRIPT, message)
    except Exception as e:
        logger.warning("Could not show alert", error=str(e))


async def export_to_pdf(
    page,
    element_id: str | None = None,
    *,
    method: str = "svg",
    filename: str | None = None,
    output_dir: Path | str | None = None,
) -> Path:
    """
    Rasterize an element of ``page`` and save it as a one-page PDF.

    Args:
        page: Playwright page with the résumé already laid out
        element_id: ID of the printable element
        method: "svg" (canvas/SVG) or "clone" (html2canvas on a DOM clone)
        filename: Output filename
        output_dir: Directory to write into

    Returns:
        Path to the saved PDF

    Raises:
        RasterizationError: Naming the stage that failed
    """
    element_id = element_id or settings.printable_element_id
    filename = filename or settings.default_filename
    output_dir = Path(output_dir or settings.output_dir)
    log = logger.bind(element_id=element_id, method=method, filename=filename)

    stage = "measure"
    try:
        rasterizer = get_rasterizer(method, page)
        target = await measure_target(page, element_id)
        log.info("Measured element", width=target.width, height=target.height)

        stage = "render"
        image = await rasterizer.render(target)

        stage = "embed"
        document = build_raster_pdf([image], filename)

        stage = "save"
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / filename
        output_path.write_bytes(document.pdf_bytes)

    except ExportError as e:
        log.error("Export failed", stage=e.stage or stage, error=e.message)
        await _alert(page, f"Error generating PDF: {e.message}")
        if isinstance(e, RasterizationError):
            raise
        raise RasterizationError(e.message, stage=e.stage or stage) from e
    except Exception as e:
        log.error("Export failed", stage=stage, error=str(e))
        await _alert(page, f"Error generating PDF: {e}")
        raise RasterizationError(str(e), stage=stage) from e

    log.info("PDF saved", path=str(output_path), size=len(document))
    return output_path


@asynccontextmanager
async def open_document(html: str, provider: PageProvider | None = None):
    """
    Load ``html`` into a fresh headless page and yield it.

    The browser is closed when the block exits, however it exits.
    """
    provider = provider or LaunchPerRequestProvider()
    async with provider.page() as page:
        await page.set_content(
            html, wait_until="load", timeout=settings.content_timeout_ms
        )
        await page.wait_for_load_state("networkidle", timeout=settings.content_timeout_ms)
        yield page


def submit_print_request(
    server_url: str,
    request: PrintRequest,
    output_dir: Path | str | None = None,
    timeout: float = 120,
) -> Path:
    """
    POST a print request to ``<server_url>/export-pdf`` and save the PDF.

    Raises:
        PdfGenerationError: The server answered with a non-2xx status or
            could not be reached
    """
    url = server_url.rstrip("/") + "/export-pdf"
    output_dir = Path(output_dir or settings.output_dir)
    log = logger.bind(url=url, filename=request.filename)
    log.info("Submitting print request", html_kb=round(len(request.html_content) / 1024))

    try:
        response = requests.post(url, data=request.to_form(), timeout=timeout)
    except requests.RequestException as e:
        raise PdfGenerationError(f"Could not reach print server: {e}", stage="submit") from e

    if not response.ok:
        log.error("Print server error", status=response.status_code, body=response.text)
        raise PdfGenerationError(
            f"Server responded with {response.status_code}: {response.text}",
            stage="submit",
        )

    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / request.filename
    output_path.write_bytes(response.content)
    log.info("PDF saved", path=str(output_path), size=len(response.content))
    return output_path
