"""
Tests for the command line interface.
"""

from unittest.mock import patch

import pytest

from resume_export.__main__ import build_parser, main


@pytest.fixture
def resume_file(tmp_path, sample_markup):
    path = tmp_path / "resume.html"
    path.write_text(
        f"<html><body><nav>menu</nav>{sample_markup}</body></html>", encoding="utf-8"
    )
    return path


def test_parser_defaults():
    args = build_parser().parse_args(["print", "resume.html"])
    assert args.format == "Letter"
    assert args.landscape is False
    assert args.filename == "resume.pdf"
    assert args.element_id == "printable-resume"


@pytest.mark.parametrize("value,expected", [("a4", "A4"), ("LETTER", "Letter"), ("Legal", "Legal")])
def test_parser_format_is_case_insensitive(value, expected):
    args = build_parser().parse_args(["print", "resume.html", "--format", value])
    assert args.format == expected


def test_parser_rejects_unknown_format(capsys):
    with pytest.raises(SystemExit):
        build_parser().parse_args(["print", "resume.html", "--format", "B5"])
    assert "Unsupported paper format: B5" in capsys.readouterr().err


def test_print_view_writes_html(resume_file, tmp_path):
    out = tmp_path / "out"
    code = main(["print-view", str(resume_file), "--output-dir", str(out), "--format", "A4"])

    assert code == 0
    html = (out / "resume.html").read_text(encoding="utf-8")
    assert "size: 8.27in 11.7in;" in html
    assert "menu" not in html


def test_print_command_uses_selected_engine(resume_file, tmp_path, fake_engine):
    engine = fake_engine()
    out = tmp_path / "out"

    with patch("resume_export.__main__.get_print_engine", return_value=engine) as get_engine:
        code = main(
            ["print", str(resume_file), "--output-dir", str(out), "--engine", "weasyprint"]
        )

    assert code == 0
    get_engine.assert_called_once_with("weasyprint")
    assert (out / "resume.pdf").read_bytes() == engine.pdf_bytes
    html, options = engine.calls[0]
    assert "<nav>" not in html
    assert options.format == "Letter"


def test_print_command_reports_failure(resume_file, tmp_path, fake_engine, capsys):
    engine = fake_engine(pdf_bytes=b"%PDF-1.4\n%%EOF")

    with patch("resume_export.__main__.get_print_engine", return_value=engine):
        code = main(["print", str(resume_file), "--output-dir", str(tmp_path)])

    assert code == 1
    assert "Export failed" in capsys.readouterr().err


def test_missing_element_is_reported(tmp_path):
    path = tmp_path / "empty.html"
    path.write_text("<html><body></body></html>", encoding="utf-8")

    assert main(["print-view", str(path), "--output-dir", str(tmp_path)]) == 1
