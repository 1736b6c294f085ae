"""
Server-side export service.

Turns a PrintRequest into a validated PdfResult. Transport concerns
(form parsing, disconnects, headers) stay in the API layer.
"""

import asyncio
from contextlib import asynccontextmanager

import structlog

from ..config import settings
from ..exceptions import PdfTooSmallError
from ..models import PdfResult, PrintOptions, PrintRequest
from .base import PrintEngine

logger = structlog.get_logger()


def validate_pdf_size(pdf_bytes: bytes, minimum: int) -> None:
    """Reject implausibly small documents, which indicate a blank render."""
    if len(pdf_bytes) < minimum:
        raise PdfTooSmallError(len(pdf_bytes), minimum)


class ExportService:
    """Runs print requests through a print engine."""

    def __init__(
        self,
        engine: PrintEngine | None = None,
        *,
        min_pdf_bytes: int | None = None,
        max_concurrent: int | None = None,
    ):
        if engine is None:
            from . import get_print_engine

            engine = get_print_engine(settings.print_engine)
        self.engine = engine
        self.min_pdf_bytes = (
            settings.min_pdf_bytes if min_pdf_bytes is None else min_pdf_bytes
        )
        max_concurrent = (
            settings.max_concurrent_exports if max_concurrent is None else max_concurrent
        )
        # 0 means unbounded
        self._semaphore = asyncio.Semaphore(max_concurrent) if max_concurrent > 0 else None

    @asynccontextmanager
    async def _slot(self):
        if self._semaphore is None:
            yield
            return
        async with self._semaphore:
            yield

    async def export(self, request: PrintRequest) -> PdfResult:
        """
        Print ``request.html_content`` and validate the output.

        Raises:
            PdfGenerationError: The engine failed or the output is too small
        """
        options = PrintOptions(format=request.format, landscape=request.landscape)
        log = logger.bind(
            engine=self.engine.name,
            filename=request.filename,
            format=options.format,
            landscape=options.landscape,
        )
        log.info("Starting export", html_kb=round(len(request.html_content) / 1024))

        async with self._slot():
            pdf_bytes = await self.engine.generate_pdf(request.html_content, options)

        validate_pdf_size(pdf_bytes, self.min_pdf_bytes)

        log.info("Export complete", size=len(pdf_bytes))
        return PdfResult(pdf_bytes=pdf_bytes, filename=request.filename)
