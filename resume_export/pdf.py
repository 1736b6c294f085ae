"""
Raster PDF assembly.

Embeds rasterized pages into a PDF whose pages are sized at 0.75x the CSS
pixel box (CSS px -> PDF pt), so the document prints at on-screen size while
the 2x raster keeps it sharp.
"""

import io

import structlog
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .exceptions import RasterizationError
from .models import ExportDocument, Margins, RasterImage, paper_format_for_size

logger = structlog.get_logger()


def build_raster_pdf(images: list[RasterImage], filename: str) -> ExportDocument:
    """
    Build a PDF with one full-page image per RasterImage.

    Args:
        images: Rasterized pages, in order
        filename: Name the document will be saved under

    Returns:
        ExportDocument holding the PDF bytes, described by its first page

    Raises:
        RasterizationError: If there is nothing to embed or reportlab fails
    """
    if not images:
        raise RasterizationError("no pages to embed", stage="embed")

    buffer = io.BytesIO()
    try:
        pdf = canvas.Canvas(buffer, pagesize=images[0].page_size)
        pdf.setTitle(filename)

        for image in images:
            page_width, page_height = image.page_size
            pdf.setPageSize((page_width, page_height))
            pdf.drawImage(
                ImageReader(io.BytesIO(image.png_bytes)),
                0,
                0,
                width=page_width,
                height=page_height,
            )
            pdf.showPage()

        pdf.save()
    except Exception as e:
        raise RasterizationError(f"PDF assembly failed: {e}", stage="embed") from e

    pdf_bytes = buffer.getvalue()
    logger.info(
        "Assembled raster PDF", filename=filename, pages=len(images), bytes=len(pdf_bytes)
    )
    page_size = images[0].page_size
    page_format, landscape = paper_format_for_size(*page_size)
    return ExportDocument(
        pdf_bytes=pdf_bytes,
        filename=filename,
        page_size=page_size,
        page_count=len(images),
        page_format=page_format,
        landscape=landscape,
        margin=Margins(),
        print_background=True,
    )
