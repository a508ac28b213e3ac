"""Exceptions raised by the convert client and handled by the upload session."""

from __future__ import annotations

from typing import Optional

from .models import ErrorKind


class ConversionError(Exception):
    kind: ErrorKind = ErrorKind.NETWORK_FAILURE

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NetworkFailureError(ConversionError):
    """The request could not complete or the server answered with a non-2xx status."""

    kind = ErrorKind.NETWORK_FAILURE


class ConversionTimeoutError(ConversionError):
    kind = ErrorKind.TIMEOUT
