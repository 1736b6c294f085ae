"""
Document builders.

Renders the three HTML/SVG shells the export paths need from Jinja2
templates in ``resume_export/templates``:

- the SVG ``foreignObject`` wrapper used by the canvas rasterizer
- the self-contained document sent to the print server
- the CSS-only print view used by the browser's own print dialog
"""

from pathlib import Path

import structlog
from bs4 import BeautifulSoup
from jinja2 import Environment, FileSystemLoader, select_autoescape

from .config import settings
from .exceptions import InputError
from .models import PrintRequest, css_page_size, normalize_paper_format
from .styles import (
    PRINT_BACKGROUND_RULES,
    PRINT_TEXT_RULES,
    css_class_selector,
    patch_markup,
)

logger = structlog.get_logger()

TEMPLATE_DIR = Path(__file__).parent / "templates"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html.j2", "svg.j2"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def render_foreign_object_svg(markup: str, width: int, height: int) -> str:
    """Wrap serialized XHTML in an SVG whose foreignObject matches the target box."""
    template = _env.get_template("foreign_object.svg.j2")
    return template.render(markup=markup, width=width, height=height)


def render_export_document(
    markup: str,
    *,
    paper_format: str | None = None,
    landscape: bool = False,
    title: str = "Resume",
    stylesheet_urls: list[str] | None = None,
) -> str:
    """
    Build a self-contained HTML document around a printable element.

    The print server has no access to the client's live stylesheets, so
    styles must come from CDN links or the inline style patches.
    """
    template = _env.get_template("export_document.html.j2")
    return template.render(
        markup=patch_markup(markup),
        page_size=css_page_size(paper_format or settings.default_paper_format, landscape),
        title=title,
        stylesheet_urls=settings.stylesheet_urls if stylesheet_urls is None else stylesheet_urls,
    )


def build_print_request(
    markup: str,
    *,
    paper_format: str | None = None,
    landscape: bool = False,
    filename: str | None = None,
    title: str = "Resume",
    stylesheet_urls: list[str] | None = None,
) -> PrintRequest:
    """Package a printable element's markup as a PrintRequest for the server."""
    paper_format = normalize_paper_format(paper_format or settings.default_paper_format)
    html = render_export_document(
        markup,
        paper_format=paper_format,
        landscape=landscape,
        title=title,
        stylesheet_urls=stylesheet_urls,
    )
    logger.info(
        "Built print request",
        html_kb=round(len(html) / 1024),
        format=paper_format,
        landscape=landscape,
    )
    return PrintRequest(
        html_content=html,
        format=paper_format,
        landscape=landscape,
        filename=filename or settings.default_filename,
    )


def render_print_document(
    markup: str,
    *,
    paper_format: str | None = None,
    landscape: bool = False,
    printable_id: str | None = None,
    title: str = "Print Resume",
    stylesheet_urls: list[str] | None = None,
) -> str:
    """
    Build the print view: everything but the printable region is hidden in
    print media, the region fills the page and any preview zoom is undone.
    """
    printable_id = printable_id or settings.printable_element_id
    wrap = BeautifulSoup(markup, "html.parser").find(id=printable_id) is None

    template = _env.get_template("print_document.html.j2")
    return template.render(
        markup=markup,
        wrap=wrap,
        printable_id=printable_id,
        page_size=css_page_size(paper_format or settings.default_paper_format, landscape),
        title=title,
        stylesheet_urls=settings.stylesheet_urls if stylesheet_urls is None else stylesheet_urls,
        background_rules=[
            (css_class_selector(name), color) for name, color in PRINT_BACKGROUND_RULES.items()
        ],
        text_rules=[
            (css_class_selector(name), color) for name, color in PRINT_TEXT_RULES.items()
        ],
    )


def extract_element(html: str, element_id: str | None = None) -> str:
    """
    Return the outer markup of the element with ``element_id``.

    Raises:
        InputError: If the document has no such element
    """
    element_id = element_id or settings.printable_element_id
    element = BeautifulSoup(html, "html.parser").find(id=element_id)
    if element is None:
        raise InputError(f"Could not find element with ID '{element_id}'", stage="locate")
    return str(element)
