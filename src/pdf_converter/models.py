from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class SessionState(str, Enum):
    IDLE = "idle"
    FILES_QUEUED = "files_queued"
    CONVERTING = "converting"
    COMPLETED = "completed"
    FAILED = "failed"


class ErrorKind(str, Enum):
    INVALID_FILE = "invalid_file"
    NETWORK_FAILURE = "network_failure"
    TIMEOUT = "timeout"
    OUT_OF_RANGE_REMOVAL = "out_of_range_removal"


class NotificationLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class PendingFile:
    """
    A file selected by the user, queued for conversion.

    Either ``content`` holds the raw bytes or ``path`` points at a local file
    that is read when the conversion request is built.

    Attributes:
        name: Original filename, sent as the multipart filename
        size: Declared size in bytes
        mime_type: Declared MIME type, sent as the part content type
        content: In-memory bytes (empty when backed by ``path``)
        path: Local file backing this entry, if any
    """

    name: str
    size: int
    mime_type: str
    content: bytes = field(default=b"", repr=False, compare=False)
    path: Optional[Path] = field(default=None, compare=False)

    @property
    def key(self) -> Tuple[str, int]:
        """Uniqueness key used to deduplicate the queue."""
        return (self.name, self.size)

    @classmethod
    def from_bytes(cls, name: str, content: bytes, mime_type: str) -> "PendingFile":
        return cls(name=name, size=len(content), mime_type=mime_type, content=content)

    @classmethod
    def from_path(cls, path: Path, mime_type: Optional[str] = None) -> "PendingFile":
        """
        Build an entry from a local file without reading it.

        The MIME type is guessed from the filename when not given; unknown
        extensions map to ``application/octet-stream`` so validation rejects them.
        """
        path = Path(path)
        guessed = mime_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(name=path.name, size=path.stat().st_size, mime_type=guessed, path=path)

    def read_bytes(self) -> bytes:
        if self.path is not None:
            return self.path.read_bytes()
        return self.content


class ConversionResult(BaseModel):
    """Response body of the convert endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    download_url: str = Field(alias="downloadUrl")
    filename: str


class Notification(BaseModel):
    id: int
    message: str
    level: NotificationLevel
    created_at: datetime
    expires_at: float


class FileEntryView(BaseModel):
    index: int
    name: str
    icon: str
    size_label: str


class SessionView(BaseModel):
    state: SessionState
    files: List[FileEntryView]
    convert_enabled: bool
    show_conversion_section: bool
    show_result_section: bool
    convert_label: str
    progress: int
    progress_label: str
    result: Optional[ConversionResult] = None
    last_error: Optional[ErrorKind] = None
    notifications: List[Notification] = Field(default_factory=list)
