"""
HTTP client for the convert endpoint.

``ConvertClient`` posts queued files as repeated ``files`` multipart parts and
downloads the produced PDF. Transport problems, non-2xx answers and malformed
bodies are raised as ``NetworkFailureError``; timeouts as
``ConversionTimeoutError``.
"""

from __future__ import annotations

import logging
from contextlib import suppress
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import httpx
from pydantic import ValidationError

from .errors import ConversionTimeoutError, NetworkFailureError
from .models import ConversionResult, PendingFile
from .utils import ensure_directory, safe_download_name

logger = logging.getLogger(__name__)

DEFAULT_CONVERT_PATH = "/api/convert"


def build_multipart(files: Sequence[PendingFile]) -> List[Tuple[str, Tuple[str, bytes, str]]]:
    return [("files", (f.name, f.read_bytes(), f.mime_type)) for f in files]


class ConvertClient:
    def __init__(
        self,
        base_url: str,
        convert_path: str = DEFAULT_CONVERT_PATH,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Args:
            base_url: Origin of the convert endpoint; relative download URLs resolve against it
            convert_path: Path of the convert route
            timeout: Seconds before a request is abandoned
            transport: Custom httpx transport (tests use MockTransport or ASGITransport)
        """
        self.base_url = base_url.rstrip("/")
        self.convert_path = convert_path
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def convert(self, files: Sequence[PendingFile]) -> ConversionResult:
        logger.info(f"Submitting {len(files)} file(s) to {self.base_url}{self.convert_path}")
        try:
            response = await self._client.post(self.convert_path, files=build_multipart(files))
        except httpx.TimeoutException as exc:
            raise ConversionTimeoutError(f"Conversion request timed out: {exc}") from exc
        except (httpx.HTTPError, OSError) as exc:
            raise NetworkFailureError(f"Conversion request failed: {exc}") from exc

        if not response.is_success:
            raise NetworkFailureError(f"Conversion failed with HTTP {response.status_code}", status_code=response.status_code)

        try:
            return ConversionResult.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise NetworkFailureError(f"Malformed conversion response: {exc}", status_code=response.status_code) from exc

    async def download(self, result: ConversionResult, directory: Path) -> Path:
        """
        Fetch the artifact at ``result.download_url`` and save it as ``result.filename``.

        The body is streamed into a ``.part`` sibling that only replaces the
        destination once the whole artifact arrived.

        Returns:
            Path to the written file
        """
        destination = Path(directory) / safe_download_name(result.filename)
        logger.info(f"Downloading {result.download_url} to {destination}")
        try:
            await self._stream_to_file(result.download_url, destination)
        except httpx.TimeoutException as exc:
            raise ConversionTimeoutError(f"Download timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise NetworkFailureError(f"Download failed: {exc}") from exc
        except OSError as exc:
            raise NetworkFailureError(f"Could not save download to {destination}: {exc}") from exc
        return destination

    async def _stream_to_file(self, url: str, destination: Path) -> None:
        partial = destination.with_name(destination.name + ".part")
        ensure_directory(destination.parent)
        try:
            async with self._client.stream("GET", url) as response:
                if not response.is_success:
                    raise NetworkFailureError(f"Download failed with HTTP {response.status_code}", status_code=response.status_code)
                with partial.open("wb") as buffer:
                    async for chunk in response.aiter_bytes():
                        buffer.write(chunk)
            partial.replace(destination)
        except BaseException:
            with suppress(OSError):
                partial.unlink(missing_ok=True)
            raise

    async def aclose(self) -> None:
        await self._client.aclose()
