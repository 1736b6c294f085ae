"""Server-side print engines."""

from ..exceptions import InputError
from .base import PrintEngine, PrintStage
from .browser import LaunchPerRequestProvider, PageProvider
from .chromium import ChromiumPrintEngine
from .service import ExportService, validate_pdf_size
from .weasyprint_engine import WeasyPrintEngine

__all__ = [
    "PrintEngine",
    "PrintStage",
    "PageProvider",
    "LaunchPerRequestProvider",
    "ChromiumPrintEngine",
    "WeasyPrintEngine",
    "ExportService",
    "validate_pdf_size",
    "get_print_engine",
]
PRINT_ENGINES = {"chromium": ChromiumPrintEngine, "weasyprint": WeasyPrintEngine}


def get_print_engine(name: str) -> PrintEngine:
    """Instantiate the print engine registered under ``name``."""
    try:
        return PRINT_ENGINES[name.lower()]()
    except KeyError:
        raise InputError(
            f"Unknown print engine: {name}. Use one of: {', '.join(PRINT_ENGINES)}",
            stage="validate",
        ) from None
