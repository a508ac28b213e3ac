"""
Headless command-line front end for an upload session.

Usage:
    pdf-converter scan.png notes.docx --base-url http://localhost:8000 --output-dir out/
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .configuration import load_settings
from .models import PendingFile, SessionState
from .render import format_view
from .session import UploadSession

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdf-converter",
        description="Upload images and documents to a convert endpoint and download the resulting PDF.",
    )
    parser.add_argument("files", nargs="+", type=Path, help="Files to convert")
    parser.add_argument("--base-url", help="Origin of the convert endpoint")
    parser.add_argument("--output-dir", type=Path, help="Directory for the downloaded PDF")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show progress and debug logging")
    return parser


def _overrides(args: argparse.Namespace) -> dict:
    client = {}
    if args.base_url:
        client["base_url"] = args.base_url
    if args.output_dir:
        client["download_dir"] = str(args.output_dir)
    if args.timeout:
        client["timeout_seconds"] = args.timeout
    return {"client": client} if client else {}


async def run(session: UploadSession, paths: List[Path], verbose: bool = False) -> Optional[Path]:
    """Drive one session through add -> convert -> download; returns the saved PDF or None."""
    if verbose:
        session.subscribe(lambda snapshot: logger.debug("\n".join(format_view(session.view()))))

    candidates = []
    for path in paths:
        if not path.is_file():
            logger.error(f"Not a file: {path}")
            continue
        candidates.append(PendingFile.from_path(path))

    session.add_files(candidates)
    if not session.files:
        logger.error("Nothing to convert")
        return None

    await session.start_conversion()
    state = await session.wait_until_settled()
    if state != SessionState.COMPLETED:
        return None
    return await session.download_result()


async def _main(args: argparse.Namespace) -> int:
    session = UploadSession.from_config(load_settings(_overrides(args)))
    try:
        saved = await run(session, args.files, verbose=args.verbose)
    finally:
        await session.aclose()
    if saved is None:
        return 1
    print(saved)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(_main(args))


if __name__ == "__main__":
    sys.exit(main())
