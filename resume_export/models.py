"""
Data models for document export.

Everything here is created per export action and discarded once the
artifact has been handed over; nothing is cached or persisted.
"""

import base64
import binascii
import io

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, Field, field_validator, model_validator

from .exceptions import InputError, RasterizationError

# Resolution multiplier applied before PNG encoding
OVERSAMPLING = 2

# CSS px -> PDF pt
PX_TO_PT = 0.75

# Portrait (width, height) in inches, matching the browser print engine
PAPER_SIZES_IN = {
    "Letter": (8.5, 11),
    "Legal": (8.5, 14),
    "Tabloid": (11, 17),
    "Ledger": (17, 11),
    "A0": (33.1, 46.8),
    "A1": (23.4, 33.1),
    "A2": (16.54, 23.4),
    "A3": (11.7, 16.54),
    "A4": (8.27, 11.7),
    "A5": (5.83, 8.27),
    "A6": (4.13, 5.83),
}

PAPER_FORMATS = list(PAPER_SIZES_IN)

_PAPER_FORMAT_LOOKUP = {name.lower(): name for name in PAPER_FORMATS}


def normalize_paper_format(value: str) -> str:
    """
    Match a paper format case-insensitively and return its canonical name.

    Raises:
        InputError: If the format is not supported
    """
    canonical = _PAPER_FORMAT_LOOKUP.get(str(value).strip().lower())
    if canonical is None:
        raise InputError(f"Unsupported paper format: {value}", stage="validate")
    return canonical


def css_page_size(paper_format: str, landscape: bool = False) -> str:
    """Explicit ``@page size`` value, e.g. ``"8.5in 11in"``."""
    width, height = PAPER_SIZES_IN[normalize_paper_format(paper_format)]
    if landscape:
        width, height = height, width
    return f"{width}in {height}in"


def paper_format_for_size(width_pt: float, height_pt: float, tolerance: float = 1.0):
    """
    Name the paper format a page size in points corresponds to.

    Returns:
        (format, landscape), or (None, width > height) for a custom size
    """
    for landscape in (False, True):
        for name, (width_in, height_in) in PAPER_SIZES_IN.items():
            width, height = width_in * 72, height_in * 72
            if landscape:
                width, height = height, width
            if abs(width - width_pt) <= tolerance and abs(height - height_pt) <= tolerance:
                return name, landscape
    return None, width_pt > height_pt


class Margins(BaseModel):
    """Four-sided page margins as CSS length strings."""

    top: str = "0"
    right: str = "0"
    bottom: str = "0"
    left: str = "0"


class PrintOptions(BaseModel):
    """Options understood by every print engine."""

    format: str = "Letter"
    landscape: bool = False
    print_background: bool = True
    margin: Margins = Field(default_factory=Margins)
    scale: float = Field(1.0, gt=0.1, le=2.0)

    @field_validator("format")
    @classmethod
    def validate_format(cls, v):
        """Normalize the paper format."""
        try:
            return normalize_paper_format(v)
        except InputError as e:
            raise ValueError(e.message) from e


class PrintRequest(BaseModel):
    """Payload crossing the client -> server boundary."""

    html_content: str
    format: str = "Letter"
    landscape: bool = False
    filename: str = "resume.pdf"

    def to_form(self) -> dict[str, str]:
        """Encode as the form fields the export endpoint expects."""
        return {
            "htmlContent": self.html_content,
            "format": self.format,
            "landscape": "true" if self.landscape else "false",
            "filename": self.filename,
        }


class RenderTarget(BaseModel):
    """An already laid-out element, measured before cloning or serialization."""

    element_id: str
    width: int = Field(gt=0)
    height: int = Field(gt=0)


class RasterImage(BaseModel):
    """A PNG produced from a RenderTarget at the oversampling factor."""

    png_bytes: bytes
    pixel_width: int
    pixel_height: int
    css_width: int
    css_height: int
    scale: int = OVERSAMPLING

    @model_validator(mode="after")
    def check_oversampling(self):
        """Pixel size must be exactly the CSS size times the scale."""
        expected = (self.css_width * self.scale, self.css_height * self.scale)
        if (self.pixel_width, self.pixel_height) != expected:
            raise ValueError(
                f"raster is {self.pixel_width}x{self.pixel_height}, "
                f"expected {expected[0]}x{expected[1]}"
            )
        return self

    @classmethod
    def from_data_uri(cls, data_uri: str, target: RenderTarget) -> "RasterImage":
        """
        Decode a ``data:image/png;base64,...`` URI produced by a canvas.

        Raises:
            RasterizationError: If the URI is not a decodable PNG or its size
                breaks the oversampling invariant
        """
        header, _, payload = (data_uri or "").partition(",")
        if not header.startswith("data:image/png") or not payload:
            raise RasterizationError("canvas did not return a PNG data URI", stage="encode")

        try:
            png_bytes = base64.b64decode(payload, validate=True)
            with Image.open(io.BytesIO(png_bytes)) as img:
                pixel_width, pixel_height = img.size
        except (binascii.Error, UnidentifiedImageError) as e:
            raise RasterizationError(f"invalid PNG payload: {e}", stage="encode") from e

        try:
            return cls(
                png_bytes=png_bytes,
                pixel_width=pixel_width,
                pixel_height=pixel_height,
                css_width=target.width,
                css_height=target.height,
            )
        except ValueError as e:
            raise RasterizationError(str(e), stage="encode") from e

    @property
    def page_size(self) -> tuple[float, float]:
        """PDF page size in points for this image."""
        return (self.css_width * PX_TO_PT, self.css_height * PX_TO_PT)


class ExportDocument(BaseModel):
    """
    The PDF artifact handed to the user.

    ``page_format`` is None when the page is sized to the element rather than
    to a named paper format.
    """

    pdf_bytes: bytes
    filename: str
    page_size: tuple[float, float]
    page_count: int = 1
    page_format: str | None = None
    landscape: bool = False
    margin: Margins = Field(default_factory=Margins)
    print_background: bool = True
    content_type: str = "application/pdf"

    def __len__(self) -> int:
        return len(self.pdf_bytes)


class PdfResult(BaseModel):
    """Result of a server export, ready for an HTTP response."""

    pdf_bytes: bytes
    filename: str
    content_type: str = "application/pdf"

    def __len__(self) -> int:
        """Return the size of PDF in bytes"""
        return len(self.pdf_bytes)
