"""
Résumé Document Export

Turns a rendered résumé into a downloadable PDF, either by rasterizing the
printable element in the page or by printing a self-contained HTML document
with a headless browser on the server.
"""

__version__ = "1.0.0"

from .client import export_to_pdf, open_document, submit_print_request
from .documents import build_print_request, render_export_document, render_print_document
from .exceptions import (
    ExportError,
    InputError,
    PdfGenerationError,
    PdfTooSmallError,
    RasterizationError,
)
from .models import (
    ExportDocument,
    PdfResult,
    PrintOptions,
    PrintRequest,
    RasterImage,
    RenderTarget,
)
from .printing import ExportService, get_print_engine

__all__ = [
    "export_to_pdf",
    "open_document",
    "submit_print_request",
    "build_print_request",
    "render_export_document",
    "render_print_document",
    "ExportService",
    "get_print_engine",
    "ExportError",
    "InputError",
    "PdfGenerationError",
    "PdfTooSmallError",
    "RasterizationError",
    "ExportDocument",
    "PdfResult",
    "PrintOptions",
    "PrintRequest",
    "RasterImage",
    "RenderTarget",
]
