"""
Résumé Export API.

Server side of the document export pipeline: accepts a self-contained HTML
document as form data and returns it printed to PDF by headless Chromium
(or WeasyPrint).

Endpoints:
- POST /export-pdf  HTML in, PDF out
- GET  /health      print engine availability
- GET  /            service information
"""

import asyncio
import time
import uuid
from datetime import datetime
from enum import Enum
from urllib.parse import quote

import structlog
from fastapi import Depends, FastAPI, Form, Request
from fastapi.exception_handlers import http_exception_handler as default_http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from . import __version__
from .config import settings
from .exceptions import InputError, PdfGenerationError
from .log import configure_logging
from .models import PrintRequest, normalize_paper_format
from .printing import ExportService

configure_logging(settings.log_level, settings.log_json)
logger = structlog.get_logger()

# Characters encodeURIComponent leaves unescaped besides the unreserved set
URI_COMPONENT_SAFE = "!*'()"


# ============================================================================
# MIDDLEWARE
# ============================================================================


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add unique request ID to each request for tracking."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.perf_counter()
        logger.info("Request started", method=request.method, path=request.url.path)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        logger.info(
            "Request finished",
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000),
        )
        return response


# ============================================================================
# RESPONSE MODELS
# ============================================================================


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthCheckResponse(BaseModel):
    """Health check response model."""

    status: HealthStatus
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    engine: str
    checks: dict[str, bool]
    version: str


# ============================================================================
# DEPENDENCIES
# ============================================================================

_export_service: ExportService | None = None


def get_export_service() -> ExportService:
    """Shared export service, created on first use."""
    global _export_service
    if _export_service is None:
        _export_service = ExportService()
    return _export_service


class ClientDisconnected(Exception):
    """The client went away before the PDF was ready."""


async def run_until_disconnected(request: Request, coro, poll_interval: float):
    """
    Await ``coro`` while watching the connection.

    When the client disconnects the task is cancelled and awaited, so the
    print engine's cleanup has finished before this returns.
    """
    task = asyncio.create_task(coro)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.warning("Client disconnected, cancelling export")
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()


def pdf_headers(filename: str, size: int) -> dict[str, str]:
    """Download headers for a PDF response."""
    return {
        "Content-Disposition": f'attachment; filename="{quote(filename, safe=URI_COMPONENT_SAFE)}"',
        "Content-Length": str(size),
        "Cache-Control": "no-cache, no-store, must-revalidate",
        "Pragma": "no-cache",
        "Expires": "0",
    }


# ============================================================================
# FASTAPI APP SETUP
# ============================================================================

app = FastAPI(
    title="Resume Export API",
    description="Prints self-contained résumé HTML documents to PDF",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["POST"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Request-ID"],
)


# ============================================================================
# ENDPOINTS
# ============================================================================


@app.get("/")
def read_root():
    """Root endpoint with API information."""
    return {
        "message": "Resume Export API is running",
        "version": __version__,
        "engine": settings.print_engine,
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health", response_model=HealthCheckResponse)
async def health_check(service: ExportService = Depends(get_export_service)):
    """Report whether the configured print engine can run."""
    checks = {"print_engine": await service.engine.check_available()}
    status = HealthStatus.HEALTHY if all(checks.values()) else HealthStatus.UNHEALTHY
    return HealthCheckResponse(
        status=status, engine=service.engine.name, checks=checks, version=__version__
    )


@app.post("/export-pdf")
async def export_pdf(
    request: Request,
    htmlContent: str | None = Form(None),
    format: str | None = Form(None),
    landscape: str | None = Form(None),
    filename: str | None = Form(None),
    service: ExportService = Depends(get_export_service),
):
    """
    Print an HTML document to PDF.

    Form fields:
        htmlContent: Self-contained HTML document (required)
        format: Paper format, default Letter
        landscape: "true" for landscape orientation
        filename: Download filename, default resume.pdf
    """
    if not htmlContent:
        return PlainTextResponse("Missing HTML content", status_code=400)

    try:
        paper_format = normalize_paper_format(format or settings.default_paper_format)
    except InputError as e:
        return PlainTextResponse(e.message, status_code=400)

    print_request = PrintRequest(
        html_content=htmlContent,
        format=paper_format,
        landscape=(landscape or "").lower() == "true",
        filename=filename or settings.default_filename,
    )
    log = logger.bind(filename=print_request.filename, format=paper_format)

    try:
        result = await run_until_disconnected(
            request,
            service.export(print_request),
            settings.disconnect_poll_interval,
        )
    except ClientDisconnected:
        # Nobody is listening; the status is only for the access log
        return PlainTextResponse("Client disconnected", status_code=499)
    except PdfGenerationError as e:
        log.error("PDF generation failed", stage=e.stage, error=e.message)
        return PlainTextResponse(f"PDF generation failed: {e.message}", status_code=500)
    except Exception as e:
        log.exception("Unexpected export failure")
        return PlainTextResponse(
            f"An error occurred while processing your request: {e}", status_code=500
        )

    log.info("Returning PDF", size=len(result))
    return Response(
        content=result.pdf_bytes,
        media_type=result.content_type,
        headers=pdf_headers(result.filename, len(result)),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """/export-pdf answers any method but POST with a plain-text 405."""
    if exc.status_code == 405 and request.url.path == "/export-pdf":
        return PlainTextResponse("Method not allowed", status_code=405, headers={"Allow": "POST"})
    return await default_http_exception_handler(request, exc)
