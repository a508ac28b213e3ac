from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional
from uuid import uuid4

import httpx
from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse, JSONResponse

from .configuration import load_settings
from .models import ConversionResult
from .utils import ensure_directory, pdf_filename_for

logger = logging.getLogger(__name__)

settings = load_settings()

app = FastAPI(title="PDF Converter API", version="0.1.0")

output_root = ensure_directory(Path(settings.server.output_dir))
accepted_types = frozenset(settings.validation.accepted_types)
max_file_size = int(settings.validation.max_file_size)


class ConverterError(Exception):
    """The external converter could not produce a PDF."""


class ExternalConverter:
    """
    Forwards uploaded files to the external conversion service.

    The service receives the same multipart body as ``/api/convert`` and is
    expected to answer with the PDF bytes.
    """

    def __init__(self, url: Optional[str], timeout: float = 120.0) -> None:
        self.url = url
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.url)

    async def convert(self, parts: List[tuple]) -> bytes:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, files=parts)
        except httpx.HTTPError as exc:
            raise ConverterError(f"Converter unreachable: {exc}") from exc
        if not response.is_success:
            raise ConverterError(f"Converter answered HTTP {response.status_code}")
        return response.content


converter = ExternalConverter(settings.server.converter_url, timeout=float(settings.server.converter_timeout_seconds))


def get_converter() -> ExternalConverter:
    return converter


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Something went wrong!",
            "message": str(exc) if settings.server.debug else "Internal server error",
        },
    )


@app.get("/healthz")
def healthcheck() -> Dict[str, str]:
    return {"status": "ok"}


async def _read_upload(file: UploadFile) -> tuple:
    """Read an upload, enforcing the same type and size rules as the client."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="Uploaded files must have a filename")
    content_type = file.content_type or ""
    if content_type not in accepted_types:
        raise HTTPException(status_code=400, detail=f"Unsupported file type for {file.filename}: {content_type or 'unknown'}")

    content = await file.read(max_file_size + 1)
    await file.close()
    if len(content) > max_file_size:
        raise HTTPException(status_code=400, detail=f"{file.filename} exceeds the {max_file_size} byte limit")
    return ("files", (file.filename, content, content_type))


@app.post("/api/convert", response_model=ConversionResult)
async def convert(
    files: List[UploadFile] = File(...),
    external: ExternalConverter = Depends(get_converter),
) -> ConversionResult:
    if not external.configured:
        raise HTTPException(status_code=503, detail="No external converter is configured")

    parts = [await _read_upload(file) for file in files]

    try:
        pdf_bytes = await external.convert(parts)
    except ConverterError as exc:
        logger.warning(f"Conversion of {len(parts)} file(s) failed: {exc}")
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    conversion_id = uuid4().hex
    filename = pdf_filename_for(parts[0][1][0])
    destination = ensure_directory(output_root / conversion_id) / filename
    destination.write_bytes(pdf_bytes)
    logger.info(f"Stored converted PDF at {destination}")

    return ConversionResult(download_url=f"/api/download/{conversion_id}/{filename}", filename=filename)


@app.get("/api/download/{conversion_id}/{filename}")
def download(conversion_id: str, filename: str) -> FileResponse:
    base_path = output_root.resolve()
    file_path = (base_path / conversion_id / filename).resolve()
    if not file_path.is_relative_to(base_path):
        raise HTTPException(status_code=400, detail="Invalid path request")
    if not file_path.exists() or not file_path.is_file():
        raise HTTPException(status_code=404, detail="Converted file not found")
    return FileResponse(file_path, media_type="application/pdf", filename=file_path.name)
