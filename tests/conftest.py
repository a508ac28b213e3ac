"""
Pytest configuration and fixtures for PDF Converter tests.
"""

import os
import random
import shutil
import tempfile

import httpx
import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing the app
os.environ["OUTPUT_DIR"] = tempfile.mkdtemp(prefix="pdf_converter_test_output_")
os.environ["CONVERTER_URL"] = "http://converter.test/convert"
os.environ["DEBUG"] = "false"

from pdf_converter.client import ConvertClient
from pdf_converter.main import ConverterError, app, get_converter
from pdf_converter.models import PendingFile
from pdf_converter.notifications import NotificationCenter
from pdf_converter.session import UploadSession

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF"


class FakeConverter:
    """Stands in for the external conversion service."""

    def __init__(self, pdf: bytes = PDF_BYTES, error: str | None = None, configured: bool = True):
        self.pdf = pdf
        self.error = error
        self.configured = configured
        self.calls = []

    async def convert(self, parts):
        self.calls.append(parts)
        if self.error:
            raise ConverterError(self.error)
        return self.pdf


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session", autouse=True)
def test_dirs():
    """Cleanup the output directory after all tests."""
    output_dir = os.environ["OUTPUT_DIR"]
    yield {"output": output_dir}
    shutil.rmtree(output_dir, ignore_errors=True)


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    return TestClient(app)


@pytest.fixture
def fake_converter():
    """Replace the external converter dependency for one test."""
    converter = FakeConverter()
    app.dependency_overrides[get_converter] = lambda: converter
    yield converter
    app.dependency_overrides.pop(get_converter, None)


@pytest.fixture
def png_file():
    return PendingFile.from_bytes("a.png", b"\x89PNG" + b"\x00" * 996, "image/png")


@pytest.fixture
def docx_file():
    return PendingFile.from_bytes(
        "letter.docx",
        b"PK" + b"\x00" * 510,
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_session(tmp_path, clock):
    """Build a session whose HTTP traffic is answered by ``handler``."""

    def factory(handler=None, transport=None, base_url="http://testserver"):
        if transport is None:
            transport = httpx.MockTransport(handler or (lambda request: httpx.Response(404)))
        return UploadSession(
            client=ConvertClient(base_url=base_url, timeout=5.0, transport=transport),
            notifications=NotificationCenter(ttl=3.0, clock=clock),
            download_dir=tmp_path / "downloads",
            progress_interval=0,
            rng=random.Random(7),
        )

    return factory
