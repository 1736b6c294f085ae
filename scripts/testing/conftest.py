"""
Shared fixtures for the export test suite.

Playwright is never launched: pages, handles and engines are replaced with
small fakes that answer the scripts the code evaluates.
"""

import base64
import io
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from resume_export.models import PrintOptions
from resume_export.printing import PrintEngine


def make_png(width: int, height: int) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(buffer, format="PNG")
    return buffer.getvalue()


def make_data_uri(width: int, height: int) -> str:
    return "data:image/png;base64," + base64.b64encode(make_png(width, height)).decode()


class FakePage:
    """
    Answers ``page.evaluate`` by script.

    ``responses`` maps a script to a value, an exception instance to raise,
    or a callable taking the evaluate argument.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []
        self.handle = None
        self.add_script_tag = AsyncMock()

    async def evaluate(self, script, arg=None):
        self.calls.append((script, arg))
        response = self.responses.get(script)
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(arg)
        return response

    async def evaluate_handle(self, script, arg=None):
        self.calls.append((script, arg))
        return self.handle

    def scripts(self):
        return [script for script, _ in self.calls]


class FakeEngine(PrintEngine):
    """Print engine returning canned bytes or raising."""

    name = "fake"

    def __init__(self, pdf_bytes=b"%PDF-1.4\n" + b"0" * 2048, error=None, available=True):
        self.pdf_bytes = pdf_bytes
        self.error = error
        self.available = available
        self.calls = []

    async def generate_pdf(self, html: str, options: PrintOptions) -> bytes:
        self.calls.append((html, options))
        if self.error is not None:
            raise self.error
        return self.pdf_bytes

    async def check_available(self) -> bool:
        return self.available


@pytest.fixture
def png_data_uri():
    """Factory for PNG data URIs of a given pixel size."""
    return make_data_uri


@pytest.fixture
def fake_page():
    """Factory for FakePage instances."""
    return FakePage


@pytest.fixture
def fake_engine():
    """Factory for FakeEngine instances."""
    return FakeEngine


@pytest.fixture
def clone_handle():
    """An element handle for an attached off-screen clone."""
    clone = MagicMock()
    clone.evaluate = AsyncMock()
    clone.dispose = AsyncMock()
    handle = MagicMock()
    handle.as_element.return_value = clone
    handle.dispose = AsyncMock()
    return handle


@pytest.fixture
def browser_page():
    """A Playwright page stand-in for the print engine."""
    page = MagicMock()
    page.set_content = AsyncMock()
    page.wait_for_load_state = AsyncMock()
    page.wait_for_selector = AsyncMock()
    page.pdf = AsyncMock(return_value=b"%PDF-1.4\n" + b"0" * 2048)
    return page


@pytest.fixture
def sample_markup():
    """Printable element markup using the patched utility classes."""
    return (
        '<div id="printable-resume" class="bg-gray-50">'
        '<h1 class="text-blue-800">Jane Doe</h1>'
        '<span class="bg-yellow-300" style="color: red">Python</span>'
        "</div>"
    )

