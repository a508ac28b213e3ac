"""
Tests for the pass-through convert API.

Tests cover:
- Health check
- Convert route (validation, converter errors, stored artifact)
- Download route
- Unhandled error responses
"""

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from pdf_converter import main
from pdf_converter.main import app

from conftest import PDF_BYTES, FakeConverter


class TestHealthCheck:
    """Tests for the /healthz endpoint."""

    def test_health_check_returns_ok(self, client):
        """Health check should return status ok."""
        response = client.get("/healthz")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestConvert:
    """Tests for the /api/convert endpoint."""

    def test_convert_returns_download_url_and_filename(self, client, fake_converter):
        """A successful conversion answers with the camelCase result body."""
        response = client.post(
            "/api/convert",
            files=[("files", ("Scan 1.png", b"\x89PNG data", "image/png"))],
        )
        assert response.status_code == 200

        data = response.json()
        assert data["filename"] == "scan-1.pdf"
        assert data["downloadUrl"].startswith("/api/download/")
        assert data["downloadUrl"].endswith("/scan-1.pdf")

    def test_convert_forwards_every_file_to_converter(self, client, fake_converter):
        """All repeated `files` parts reach the external converter in order."""
        response = client.post(
            "/api/convert",
            files=[
                ("files", ("a.png", b"png-bytes", "image/png")),
                ("files", ("notes.txt", b"hello", "text/plain")),
            ],
        )
        assert response.status_code == 200

        parts = fake_converter.calls[0]
        assert [part[1][0] for part in parts] == ["a.png", "notes.txt"]
        assert parts[1][1] == ("notes.txt", b"hello", "text/plain")

    def test_convert_requires_files(self, client, fake_converter):
        """A request without file parts fails validation."""
        response = client.post("/api/convert", data={"label": "nothing"})
        assert response.status_code == 422

    def test_convert_rejects_unsupported_type(self, client, fake_converter):
        """Files outside the accepted MIME types are refused."""
        response = client.post(
            "/api/convert",
            files=[("files", ("archive.zip", b"PK", "application/zip"))],
        )
        assert response.status_code == 400
        assert "Unsupported file type" in response.json()["detail"]
        assert fake_converter.calls == []

    def test_convert_rejects_oversized_file(self, client, fake_converter, monkeypatch):
        """Files above the size limit are refused."""
        monkeypatch.setattr(main, "max_file_size", 8)
        response = client.post(
            "/api/convert",
            files=[("files", ("big.txt", b"0123456789", "text/plain"))],
        )
        assert response.status_code == 400
        assert "limit" in response.json()["detail"]

    def test_convert_without_configured_converter(self, client):
        """Without an external converter the route is unavailable."""
        app.dependency_overrides[main.get_converter] = lambda: FakeConverter(configured=False)
        try:
            response = client.post(
                "/api/convert",
                files=[("files", ("a.png", b"png", "image/png"))],
            )
        finally:
            app.dependency_overrides.pop(main.get_converter, None)
        assert response.status_code == 503

    def test_convert_converter_failure_is_bad_gateway(self, client, fake_converter):
        """Converter errors surface as 502."""
        fake_converter.error = "Converter answered HTTP 500"
        response = client.post(
            "/api/convert",
            files=[("files", ("a.png", b"png", "image/png"))],
        )
        assert response.status_code == 502
        assert response.json()["detail"] == "Converter answered HTTP 500"


class TestDownload:
    """Tests for the /api/download/{conversion_id}/{filename} endpoint."""

    def test_download_converted_pdf(self, client, fake_converter):
        """The stored artifact is served with its filename."""
        created = client.post(
            "/api/convert",
            files=[("files", ("report.docx", b"PK", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"))],
        ).json()

        response = client.get(created["downloadUrl"])
        assert response.status_code == 200
        assert response.content == PDF_BYTES
        assert response.headers["content-type"] == "application/pdf"
        assert 'filename="report.pdf"' in response.headers["content-disposition"]

    def test_download_nonexistent_file(self, client):
        """Downloading an unknown conversion should return 404."""
        response = client.get("/api/download/nonexistent/missing.pdf")
        assert response.status_code == 404

    def test_download_rejects_path_traversal(self):
        """Paths resolving outside the output directory are refused."""
        with pytest.raises(HTTPException) as excinfo:
            main.download("..", "secrets.pdf")
        assert excinfo.value.status_code == 400


class TestErrorHandling:
    """Tests for the catch-all exception handler."""

    def test_unhandled_error_returns_generic_message(self, fake_converter):
        """Unexpected errors are reported without internal details."""

        async def explode(parts):
            raise RuntimeError("disk on fire")

        fake_converter.convert = explode
        client = TestClient(app, raise_server_exceptions=False)
        response = client.post(
            "/api/convert",
            files=[("files", ("a.png", b"png", "image/png"))],
        )
        assert response.status_code == 500
        assert response.json() == {"error": "Something went wrong!", "message": "Internal server error"}
