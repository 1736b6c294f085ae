"""
Tests for the server print service.

Chromium is never launched: the page provider (or Playwright itself) is
replaced with mocks.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from resume_export.exceptions import InputError, PdfGenerationError, PdfTooSmallError
from resume_export.models import PrintOptions, PrintRequest
from resume_export.printing import (
    ChromiumPrintEngine,
    ExportService,
    LaunchPerRequestProvider,
    WeasyPrintEngine,
    get_print_engine,
)
from resume_export.printing.browser import browser_args
from resume_export.printing.weasyprint_engine import page_css

HTML = "<!DOCTYPE html><html><body><div id='printable-resume'>Jane</div></body></html>"


@pytest.fixture
def provider(browser_page):
    provider = MagicMock()
    provider.acquire_page = AsyncMock(return_value=browser_page)
    provider.release_page = AsyncMock()
    return provider


@pytest.fixture
def engine(provider):
    return ChromiumPrintEngine(provider, settle_delay_ms=0)


@pytest.fixture
def playwright_mocks(browser_page):
    """Patch async_playwright so the default provider 'launches' a mock browser."""
    browser = MagicMock()
    browser.new_page = AsyncMock(return_value=browser_page)
    browser.close = AsyncMock()

    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)
    playwright.stop = AsyncMock()

    starter = MagicMock()
    starter.start = AsyncMock(return_value=playwright)

    with patch("resume_export.printing.browser.async_playwright", return_value=starter):
        yield browser, playwright


# ============================================================================
# CHROMIUM ENGINE
# ============================================================================


def test_chromium_prints_with_fixed_options(engine, browser_page, provider):
    pdf_bytes = asyncio.run(engine.generate_pdf(HTML, PrintOptions()))

    assert pdf_bytes.startswith(b"%PDF")
    browser_page.set_content.assert_awaited_once_with(HTML, wait_until="load", timeout=30000)
    browser_page.wait_for_load_state.assert_awaited_once_with("networkidle", timeout=30000)
    browser_page.set_default_navigation_timeout.assert_called_once_with(60000)
    browser_page.pdf.assert_awaited_once_with(
        format="Letter",
        landscape=False,
        print_background=True,
        margin={"top": "0", "right": "0", "bottom": "0", "left": "0"},
        scale=1.0,
        display_header_footer=False,
        prefer_css_page_size=True,
    )
    provider.release_page.assert_awaited_once_with(browser_page)


def test_chromium_passes_format_and_orientation(engine, browser_page):
    asyncio.run(engine.generate_pdf(HTML, PrintOptions(format="a4", landscape=True)))

    kwargs = browser_page.pdf.await_args.kwargs
    assert kwargs["format"] == "A4"
    assert kwargs["landscape"] is True


def test_chromium_waits_for_ready_selector(provider, browser_page):
    engine = ChromiumPrintEngine(provider, ready_selector="#fonts-ready")
    with patch("resume_export.printing.chromium.asyncio.sleep", new=AsyncMock()) as sleep:
        asyncio.run(engine.generate_pdf(HTML, PrintOptions()))

    browser_page.wait_for_selector.assert_awaited_once_with(
        "#fonts-ready", state="attached", timeout=30000
    )
    sleep.assert_not_awaited()


def test_chromium_settles_for_fixed_delay(provider):
    engine = ChromiumPrintEngine(provider, settle_delay_ms=500)
    with patch("resume_export.printing.chromium.asyncio.sleep", new=AsyncMock()) as sleep:
        asyncio.run(engine.generate_pdf(HTML, PrintOptions()))

    sleep.assert_awaited_once_with(0.5)


def test_print_failure_names_stage_and_releases_page(engine, browser_page, provider):
    browser_page.pdf.side_effect = RuntimeError("Printing failed")

    with pytest.raises(PdfGenerationError) as exc_info:
        asyncio.run(engine.generate_pdf(HTML, PrintOptions()))

    assert exc_info.value.stage == "printing"
    assert exc_info.value.message == "Printing failed"
    provider.release_page.assert_awaited_once_with(browser_page)


def test_content_failure_names_stage(engine, browser_page):
    browser_page.set_content.side_effect = RuntimeError("Timeout 30000ms exceeded")

    with pytest.raises(PdfGenerationError) as exc_info:
        asyncio.run(engine.generate_pdf(HTML, PrintOptions()))

    assert exc_info.value.stage == "content_loading"
    browser_page.pdf.assert_not_awaited()


def test_launch_failure_names_stage(engine, provider):
    provider.acquire_page.side_effect = RuntimeError("Executable doesn't exist")

    with pytest.raises(PdfGenerationError) as exc_info:
        asyncio.run(engine.generate_pdf(HTML, PrintOptions()))

    assert exc_info.value.stage == "launching"
    provider.release_page.assert_not_awaited()


def test_cancelled_print_releases_page(engine, browser_page, provider):
    async def scenario():
        started = asyncio.Event()

        async def hang(**kwargs):
            started.set()
            await asyncio.Event().wait()

        browser_page.pdf = hang
        task = asyncio.create_task(engine.generate_pdf(HTML, PrintOptions()))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    provider.release_page.assert_awaited_once_with(browser_page)


# ============================================================================
# BROWSER LIFECYCLE
# ============================================================================


def test_browser_closed_once_when_print_stage_raises(playwright_mocks, browser_page):
    browser, playwright = playwright_mocks
    browser_page.pdf.side_effect = RuntimeError("Target closed")
    engine = ChromiumPrintEngine(LaunchPerRequestProvider(), settle_delay_ms=0)

    with pytest.raises(PdfGenerationError):
        asyncio.run(engine.generate_pdf(HTML, PrintOptions()))

    browser.close.assert_awaited_once()
    playwright.stop.assert_awaited_once()


def test_browser_closed_once_on_success(playwright_mocks):
    browser, _ = playwright_mocks
    engine = ChromiumPrintEngine(LaunchPerRequestProvider(), settle_delay_ms=0)

    asyncio.run(engine.generate_pdf(HTML, PrintOptions()))

    browser.close.assert_awaited_once()


def test_close_failure_does_not_mask_print_error(playwright_mocks, browser_page):
    browser, _ = playwright_mocks
    browser.close.side_effect = RuntimeError("Browser has been closed")
    browser_page.pdf.side_effect = RuntimeError("Printing failed")
    engine = ChromiumPrintEngine(LaunchPerRequestProvider(), settle_delay_ms=0)

    with pytest.raises(PdfGenerationError) as exc_info:
        asyncio.run(engine.generate_pdf(HTML, PrintOptions()))

    assert exc_info.value.message == "Printing failed"


def test_new_page_failure_still_closes_browser(playwright_mocks):
    browser, playwright = playwright_mocks
    browser.new_page.side_effect = RuntimeError("Target page crashed")
    engine = ChromiumPrintEngine(LaunchPerRequestProvider(), settle_delay_ms=0)

    with pytest.raises(PdfGenerationError) as exc_info:
        asyncio.run(engine.generate_pdf(HTML, PrintOptions()))

    assert exc_info.value.stage == "launching"
    browser.close.assert_awaited_once()
    playwright.stop.assert_awaited_once()


def test_launch_arguments(playwright_mocks):
    _, playwright = playwright_mocks
    provider = LaunchPerRequestProvider(headless=True, disable_sandbox=True)

    page = asyncio.run(provider.acquire_page())
    asyncio.run(provider.release_page(page))

    kwargs = playwright.chromium.launch.await_args.kwargs
    assert kwargs["headless"] is True
    assert kwargs["args"] == [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--font-render-hinting=none",
        "--disable-web-security",
    ]


def test_sandbox_flags_only_when_disabled():
    assert "--no-sandbox" not in browser_args(False)
    assert "--font-render-hinting=none" in browser_args(False)


# ============================================================================
# WEASYPRINT ENGINE
# ============================================================================


def test_weasyprint_page_css():
    css = page_css(PrintOptions(format="A4", landscape=True))
    assert css == "@page { size: 11.7in 8.27in; margin: 0 0 0 0; }"


def test_weasyprint_failure_is_a_generation_error():
    engine = WeasyPrintEngine()
    with patch.object(engine, "_render", side_effect=OSError("cannot load library 'pango'")):
        with pytest.raises(PdfGenerationError) as exc_info:
            asyncio.run(engine.generate_pdf(HTML, PrintOptions()))

    assert exc_info.value.stage == "printing"


# ============================================================================
# ENGINE REGISTRY
# ============================================================================


def test_get_print_engine():
    assert isinstance(get_print_engine("chromium"), ChromiumPrintEngine)
    assert isinstance(get_print_engine("WeasyPrint"), WeasyPrintEngine)


def test_get_print_engine_unknown():
    with pytest.raises(InputError):
        get_print_engine("wkhtmltopdf")


# ============================================================================
# EXPORT SERVICE
# ============================================================================


def test_export_service_returns_result(fake_engine):
    engine = fake_engine()
    service = ExportService(engine, min_pdf_bytes=1000, max_concurrent=0)
    request = PrintRequest(html_content=HTML, format="Legal", landscape=True, filename="jane.pdf")

    result = asyncio.run(service.export(request))

    assert result.filename == "jane.pdf"
    assert result.pdf_bytes == engine.pdf_bytes
    html, options = engine.calls[0]
    assert html == HTML
    assert (options.format, options.landscape) == ("Legal", True)


def test_export_service_rejects_small_pdf(fake_engine):
    service = ExportService(fake_engine(pdf_bytes=b"%PDF-1.4\n%%EOF"), min_pdf_bytes=1000)

    with pytest.raises(PdfTooSmallError) as exc_info:
        asyncio.run(service.export(PrintRequest(html_content=HTML)))

    assert exc_info.value.size == len(b"%PDF-1.4\n%%EOF")
    assert exc_info.value.minimum == 1000


def test_export_service_bounds_concurrency(fake_engine):
    active = 0
    peak = 0

    class SlowEngine(fake_engine):
        async def generate_pdf(self, html, options):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return self.pdf_bytes

    service = ExportService(SlowEngine(), max_concurrent=1)

    async def run_three():
        request = PrintRequest(html_content=HTML)
        await asyncio.gather(*(service.export(request) for _ in range(3)))

    asyncio.run(run_three())
    assert peak == 1
