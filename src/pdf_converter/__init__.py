"""
PDF Converter - upload files, convert them remotely, download one PDF

This package provides the client-side workflow of a file-to-PDF converter
and the thin FastAPI route that forwards uploads to an external converter.
It enables:

- Validating and deduplicating candidate files (type and 10 MiB size limit)
- Submitting the queue as a multipart request to ``POST /api/convert``
- Simulated progress feedback and ephemeral user notifications
- Downloading the produced PDF and starting over

Key Components:
    - session: UploadSession, the upload/convert/download state machine
    - state: Pure transitions over immutable session snapshots
    - client: httpx client for the convert and download endpoints
    - render: Snapshot to view model rendering
    - main: FastAPI application with the pass-through convert route
    - configuration: Config loading and merging logic
    - cli: Headless command-line session

Usage:
    Run the pass-through API with:
        CONVERTER_URL=http://converter.internal/convert uvicorn pdf_converter.main:app --port 3000

    Convert files from the command line with:
        pdf-converter scan.png letter.docx --base-url http://localhost:3000
"""

from .models import ConversionResult, ErrorKind, PendingFile, SessionState
from .session import UploadSession

__all__ = ["ConversionResult", "ErrorKind", "PendingFile", "SessionState", "UploadSession"]
