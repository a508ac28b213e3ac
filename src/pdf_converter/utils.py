"""
File validation and formatting helpers.

This module provides helper functions for:
- Checking candidate files against the accepted MIME types and size limit
- Labelling files for display (type icon, human readable size)
- Sanitizing user-provided filenames for safe filesystem usage
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterable, Optional

from .models import PendingFile

# Ten mebibytes
MAX_FILE_SIZE = 10 * 1024 * 1024

FILE_ICONS: Dict[str, str] = {
    "image/jpeg": "JPG",
    "image/png": "PNG",
    "image/gif": "GIF",
    "image/bmp": "BMP",
    "application/msword": "DOC",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "DOCX",
    "text/plain": "TXT",
    "application/rtf": "RTF",
}

ACCEPTED_MIME_TYPES = frozenset(FILE_ICONS)

# Allows: alphanumeric characters, dots, underscores, and hyphens
SANITIZE_PATTERN = re.compile(r"[^a-zA-Z0-9._-]+")

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


def is_valid_file(
    candidate: PendingFile,
    accepted_types: Optional[Iterable[str]] = None,
    max_size: int = MAX_FILE_SIZE,
) -> bool:
    """
    Check whether a candidate file may enter the conversion queue.

    Args:
        candidate: The file selected by the user
        accepted_types: MIME types to accept (default: ACCEPTED_MIME_TYPES)
        max_size: Largest accepted size in bytes, inclusive

    Returns:
        True if the declared type is accepted and the size is within the limit
    """
    types = ACCEPTED_MIME_TYPES if accepted_types is None else frozenset(accepted_types)
    return candidate.mime_type in types and candidate.size <= max_size


def file_icon(mime_type: str) -> str:
    return FILE_ICONS.get(mime_type, "FILE")


def format_file_size(num_bytes: int) -> str:
    """
    Format a byte count the way the file list displays it.

    Example:
        >>> format_file_size(0)
        '0 Bytes'
        >>> format_file_size(1536)
        '1.5 KB'
    """
    if num_bytes <= 0:
        return "0 Bytes"
    exponent = 0
    while exponent < len(_SIZE_UNITS) - 1 and num_bytes >= 1024 ** (exponent + 1):
        exponent += 1
    value = round(num_bytes / 1024**exponent, 2)
    # Drop trailing zeros: 2.0 -> 2, 1.50 -> 1.5
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[exponent]}"


def sanitize_label(label: str, fallback: str) -> str:
    """
    Generate a filesystem-safe label from user input.

    Args:
        label: The original label string to sanitize
        fallback: Default value to return if sanitization results in an empty string

    Returns:
        A lowercase, filesystem-safe label or the fallback value

    Example:
        >>> sanitize_label("My Document!", "document")
        'my-document'
        >>> sanitize_label("@#$", "document")
        'document'
    """
    cleaned = SANITIZE_PATTERN.sub("-", label.strip())
    cleaned = cleaned.strip("-_.").lower()
    return cleaned or fallback


def pdf_filename_for(source_name: str) -> str:
    """Name of the PDF produced from a source file, e.g. ``Scan 1.png`` -> ``scan-1.pdf``."""
    return f"{sanitize_label(Path(source_name).stem, fallback='document')}.pdf"


def safe_download_name(filename: str, fallback: str = "converted.pdf") -> str:
    """Strip any directory components a server-suggested filename may carry."""
    name = Path(filename.replace("\\", "/")).name
    if name in {"", ".", ".."}:
        return fallback
    return name


def ensure_directory(path: Path) -> Path:
    """
    Create a directory if it doesn't exist, including parent directories.

    Returns:
        The same path object for chaining
    """
    path.mkdir(parents=True, exist_ok=True)
    return path
