"""
Print engine interface.
"""

from abc import ABC, abstractmethod
from enum import Enum

from ..models import PrintOptions


class PrintStage(str, Enum):
    """States a print request moves through. FAILED is reachable from any non-terminal state."""

    IDLE = "idle"
    LAUNCHING = "launching"
    PAGE_OPENED = "page_opened"
    CONTENT_LOADING = "content_loading"
    STYLE_SETTLING = "style_settling"
    PRINTING = "printing"
    DONE = "done"
    FAILED = "failed"


class PrintEngine(ABC):
    """Converts a self-contained HTML string into PDF bytes."""

    name = "base"

    @abstractmethod
    async def generate_pdf(self, html: str, options: PrintOptions) -> bytes:
        """
        Print ``html`` to PDF.

        Args:
            html: Self-contained HTML document
            options: Paper format, orientation, margins, background flag

        Returns:
            Raw PDF bytes

        Raises:
            PdfGenerationError: Carrying the failing stage and the underlying message
        """

    async def check_available(self) -> bool:
        """Report whether the engine can run in this environment."""
        return True
