"""
CLI entry point for résumé document export.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from . import __version__
from .client import export_to_pdf, open_document, submit_print_request
from .config import settings
from .documents import build_print_request, extract_element, render_print_document
from .exceptions import ExportError, InputError
from .log import configure_logging
from .models import PAPER_FORMATS, PrintRequest, normalize_paper_format
from .printing import ExportService, get_print_engine


def _add_document_args(parser):
    parser.add_argument("input", help="Path to an HTML file containing the résumé")
    parser.add_argument(
        "--element-id",
        default=settings.printable_element_id,
        help=f"ID of the printable element (default: {settings.printable_element_id})",
    )
    parser.add_argument(
        "--output-dir",
        default=str(settings.output_dir),
        help=f"Output directory (default: {settings.output_dir})",
    )
    parser.add_argument(
        "--filename",
        default=settings.default_filename,
        help=f"Output filename (default: {settings.default_filename})",
    )


def _paper_format(value: str) -> str:
    try:
        return normalize_paper_format(value)
    except InputError as e:
        raise argparse.ArgumentTypeError(e.message) from e


def _add_paper_args(parser):
    parser.add_argument(
        "--format",
        default=settings.default_paper_format,
        type=_paper_format,
        help=f"Paper format, any case: {', '.join(PAPER_FORMATS)} "
        f"(default: {settings.default_paper_format})",
    )
    parser.add_argument("--landscape", action="store_true", help="Landscape orientation")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="resume-export",
        description="Résumé Document Export",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve --port 8000
  %(prog)s print resume.html --format A4
  %(prog)s print resume.html --whole-document --engine weasyprint
  %(prog)s raster resume.html --method clone
  %(prog)s submit resume.html --server http://localhost:8000
  %(prog)s print-view resume.html
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=settings.log_level, help="Log level")
    parser.add_argument("--log-json", action="store_true", help="Emit JSON log lines")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the export API server")
    serve.add_argument("--host", default=settings.host)
    serve.add_argument("--port", type=int, default=settings.port)
    serve.add_argument("--reload", action="store_true", help="Auto-reload on code changes")

    print_cmd = subparsers.add_parser("print", help="Print a document to PDF locally")
    _add_document_args(print_cmd)
    _add_paper_args(print_cmd)
    print_cmd.add_argument(
        "--engine",
        default=settings.print_engine,
        choices=["chromium", "weasyprint"],
        help=f"Print engine (default: {settings.print_engine})",
    )
    print_cmd.add_argument(
        "--whole-document",
        action="store_true",
        help="Print the input as-is instead of extracting the printable element",
    )

    raster = subparsers.add_parser("raster", help="Rasterize the printable element to PDF")
    _add_document_args(raster)
    raster.add_argument(
        "--method",
        default="svg",
        choices=["svg", "clone"],
        help="Rasterization path (default: svg)",
    )

    submit = subparsers.add_parser("submit", help="Send a document to a running export server")
    _add_document_args(submit)
    _add_paper_args(submit)
    submit.add_argument(
        "--server",
        default=f"http://localhost:{settings.port}",
        help="Export server base URL",
    )

    view = subparsers.add_parser("print-view", help="Write the browser print view as HTML")
    _add_document_args(view)
    _add_paper_args(view)

    return parser


async def _print(args, html: str) -> Path:
    if args.whole_document:
        request = PrintRequest(
            html_content=html,
            format=args.format,
            landscape=args.landscape,
            filename=args.filename,
        )
    else:
        request = build_print_request(
            extract_element(html, args.element_id),
            paper_format=args.format,
            landscape=args.landscape,
            filename=args.filename,
        )

    service = ExportService(get_print_engine(args.engine))
    result = await service.export(request)

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / result.filename
    output_path.write_bytes(result.pdf_bytes)
    return output_path


async def _raster(args, html: str) -> Path:
    async with open_document(html) as page:
        return await export_to_pdf(
            page,
            args.element_id,
            method=args.method,
            filename=args.filename,
            output_dir=args.output_dir,
        )


def _print_view(args, html: str) -> Path:
    document = render_print_document(
        extract_element(html, args.element_id),
        paper_format=args.format,
        landscape=args.landscape,
        printable_id=args.element_id,
    )
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / (Path(args.filename).stem + ".html")
    output_path.write_text(document, encoding="utf-8")
    return output_path


def main(argv=None):
    """Run the export CLI."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_json)

    if args.command == "serve":
        import uvicorn

        uvicorn.run(
            "resume_export.api:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=args.log_level.lower(),
        )
        return 0

    html = Path(args.input).read_text(encoding="utf-8")

    try:
        if args.command == "print":
            output_path = asyncio.run(_print(args, html))
        elif args.command == "raster":
            output_path = asyncio.run(_raster(args, html))
        elif args.command == "submit":
            request = build_print_request(
                extract_element(html, args.element_id),
                paper_format=args.format,
                landscape=args.landscape,
                filename=args.filename,
            )
            output_path = submit_print_request(args.server, request, args.output_dir)
        else:
            output_path = _print_view(args, html)
    except ExportError as e:
        print(f"\n✗ Export failed: {e}", file=sys.stderr)
        return 1

    print(f"\n✓ Written to {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
