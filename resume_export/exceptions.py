"""Exception hierarchy for document export."""


class ExportError(Exception):
    """Base class for all export failures."""

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"{self.message} (stage: {self.stage})"
        return self.message


class InputError(ExportError):
    """Request fields are missing or invalid. Nothing was processed."""


class RasterizationError(ExportError):
    """Client-side rasterization failed (locate, measure, decode, render, ...)."""


class PdfGenerationError(ExportError):
    """Server-side printing failed; carries the underlying browser message."""


class PdfTooSmallError(PdfGenerationError):
    """The print call succeeded but produced an implausibly small document."""

    def __init__(self, size: int, minimum: int):
        super().__init__(
            f"output is too small ({size} bytes, minimum {minimum})",
            stage="validate",
        )
        self.size = size
        self.minimum = minimum
