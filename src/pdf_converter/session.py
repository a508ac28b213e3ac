"""
Upload/convert/download workflow for a single user session.

This module owns the client-side lifecycle of a conversion:
- Validating, deduplicating and queueing candidate files
- Submitting the queue to the convert endpoint (one request at a time)
- Driving the simulated progress display until the result is shown
- Downloading the produced PDF and resetting for a new run

State changes go through the pure transitions in ``state``; the session
commits each new snapshot and publishes it to subscribed listeners, which
re-render from it.
"""

from __future__ import annotations

import asyncio
import logging
import random
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from omegaconf import DictConfig

from . import state as transitions
from .client import ConvertClient
from .errors import ConversionError
from .models import ConversionResult, ErrorKind, NotificationLevel, PendingFile, SessionState, SessionView
from .notifications import NotificationCenter
from .progress import ProgressTicker
from .render import build_view
from .state import SessionSnapshot
from .utils import MAX_FILE_SIZE

logger = logging.getLogger(__name__)

SKIPPED_MESSAGE = "Some files were skipped due to invalid format"
FAILED_MESSAGE = "Conversion failed. Please try again."
TIMEOUT_MESSAGE = "Conversion timed out. Please try again."
BUSY_MESSAGE = "A conversion is in progress; the file list is locked until it finishes."

StateListener = Callable[[SessionSnapshot], None]


class UploadSession:
    """
    Controller for one upload session.

    All methods run on the event loop thread; ``start_conversion`` is the only
    operation that awaits the network, and while it is outstanding every other
    conversion trigger is a no-op.

    Attributes:
        client: HTTP client for the convert and download endpoints
        notifications: Ephemeral info/warning/error messages shown to the user
        download_dir: Directory where ``download_result`` saves artifacts
    """

    def __init__(
        self,
        client: ConvertClient,
        notifications: Optional[NotificationCenter] = None,
        download_dir: Path | None = None,
        accepted_types: Optional[Iterable[str]] = None,
        max_file_size: int = MAX_FILE_SIZE,
        progress_interval: float = 0.2,
        progress_min_step: float = 1.0,
        progress_max_step: float = 20.0,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.client = client
        self.notifications = notifications or NotificationCenter()
        self.download_dir = Path(download_dir or "downloads")
        self.accepted_types = None if accepted_types is None else frozenset(accepted_types)
        self.max_file_size = max_file_size
        self._snapshot = SessionSnapshot()
        self._listeners: List[StateListener] = []
        self._conversion_task: Optional[asyncio.Task] = None
        self._ticker = ProgressTicker(
            self._on_progress,
            interval=progress_interval,
            min_step=progress_min_step,
            max_step=progress_max_step,
            rng=rng,
        )

    @classmethod
    def from_config(cls, config: DictConfig, transport=None, rng: Optional[random.Random] = None) -> "UploadSession":
        """Build a session and its client from a configuration produced by ``load_settings``."""
        client = ConvertClient(
            base_url=config.client.base_url,
            convert_path=config.client.convert_path,
            timeout=float(config.client.timeout_seconds),
            transport=transport,
        )
        return cls(
            client=client,
            notifications=NotificationCenter(ttl=float(config.notifications.ttl_seconds)),
            download_dir=Path(config.client.download_dir),
            accepted_types=list(config.validation.accepted_types),
            max_file_size=int(config.validation.max_file_size),
            progress_interval=float(config.progress.interval_seconds),
            progress_min_step=float(config.progress.min_step),
            progress_max_step=float(config.progress.max_step),
            rng=rng,
        )

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def state(self) -> SessionState:
        return self._snapshot.state

    @property
    def files(self) -> List[PendingFile]:
        return list(self._snapshot.files)

    @property
    def result(self) -> Optional[ConversionResult]:
        return self._snapshot.result

    @property
    def convert_enabled(self) -> bool:
        return self._snapshot.convert_enabled

    def subscribe(self, listener: StateListener) -> None:
        """Register a callback invoked with every committed snapshot; exceptions it raises are logged."""
        self._listeners.append(listener)

    def view(self) -> SessionView:
        return build_view(self._snapshot, self.notifications.active())

    def _commit(self, snapshot: SessionSnapshot) -> None:
        if snapshot == self._snapshot:
            return
        previous = self._snapshot.state
        self._snapshot = snapshot
        if snapshot.state != previous:
            logger.info(f"Session state {previous.value} -> {snapshot.state.value}")
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                # Transitions commit even when a listener fails
                logger.exception(f"State listener {listener!r} failed")

    def add_files(self, candidates: Iterable[PendingFile]) -> None:
        """
        Queue valid, not-yet-queued candidates in arrival order.

        Invalid candidates (unsupported type or larger than the size limit) are
        skipped and reported with a single aggregate warning per call.
        """
        if self.state == SessionState.CONVERTING:
            self.notifications.notify(BUSY_MESSAGE, NotificationLevel.INFO)
            return

        outcome = transitions.add_files(self._snapshot, candidates, self.accepted_types, self.max_file_size)
        if outcome.added:
            logger.debug(f"Queued {len(outcome.added)} new file(s)")
        if outcome.skipped:
            skipped_names = ", ".join(f.name for f in outcome.skipped)
            logger.warning(f"Skipped {len(outcome.skipped)} file(s) ({ErrorKind.INVALID_FILE.value}): {skipped_names}")
            self.notifications.notify(SKIPPED_MESSAGE, NotificationLevel.WARNING)
        self._commit(outcome.snapshot)

    def remove_file(self, index: int) -> None:
        if self.state == SessionState.CONVERTING:
            self.notifications.notify(BUSY_MESSAGE, NotificationLevel.INFO)
            return
        snapshot = transitions.remove_file(self._snapshot, index)
        if snapshot is self._snapshot:
            logger.debug(f"Ignoring removal ({ErrorKind.OUT_OF_RANGE_REMOVAL.value}): index {index}, queue size {len(self._snapshot.files)}")
            return
        self._commit(snapshot)

    async def start_conversion(self) -> None:
        """
        Submit every queued file to the convert endpoint.

        On success the result is stored and the progress display starts; the
        session becomes COMPLETED when it reaches 100%. On failure an error
        notification is raised and the session returns to FILES_QUEUED with the
        queue untouched. Does nothing when the queue is empty, a conversion is
        already outstanding, or the session is COMPLETED.
        """
        if not self._snapshot.convert_enabled:
            logger.debug(f"Conversion not started (state={self.state.value}, files={len(self._snapshot.files)})")
            return

        files = self._snapshot.files
        self._ticker.cancel()
        self._commit(transitions.begin_conversion(self._snapshot))

        task = asyncio.get_running_loop().create_task(self.client.convert(files))
        self._conversion_task = task
        try:
            result = await task
        except asyncio.CancelledError:
            if self._conversion_task is not task:
                # Cancelled by reset()
                return
            self._conversion_task = None
            self._commit(transitions.failure_settled(self._snapshot))
            raise
        except ConversionError as exc:
            if self._conversion_task is task:
                self._conversion_task = None
                self._fail(exc)
            return

        if self._conversion_task is not task:
            return
        self._conversion_task = None
        logger.info(f"Conversion produced {result.filename}")
        self._commit(transitions.conversion_succeeded(self._snapshot, result))
        self._ticker.start()

    def _fail(self, exc: ConversionError) -> None:
        status = f", HTTP {exc.status_code}" if exc.status_code is not None else ""
        logger.warning(f"Conversion failed ({exc.kind.value}{status}): {exc}")
        message = TIMEOUT_MESSAGE if exc.kind == ErrorKind.TIMEOUT else FAILED_MESSAGE
        self.notifications.notify(message, NotificationLevel.ERROR)
        self._commit(transitions.conversion_failed(self._snapshot, exc.kind))
        self._commit(transitions.failure_settled(self._snapshot))

    def _on_progress(self, progress: float) -> None:
        self._commit(transitions.progress_advanced(self._snapshot, progress))

    async def wait_until_settled(self) -> SessionState:
        """Wait for the progress display to finish and return the resulting state."""
        await self._ticker.wait()
        return self.state

    async def download_result(self) -> Optional[Path]:
        """
        Download the converted PDF into ``download_dir``.

        Returns:
            Path of the saved file, or None when there is no result or the download failed
        """
        result = self._snapshot.result
        if result is None:
            return None
        try:
            return await self.client.download(result, self.download_dir)
        except ConversionError as exc:
            logger.warning(f"Download failed ({exc.kind.value}): {exc}")
            self.notifications.notify("Download failed. Please try again.", NotificationLevel.ERROR)
            return None

    def reset(self) -> None:
        """Clear the queue and result, cancel outstanding work and return to IDLE."""
        self._ticker.cancel()
        task, self._conversion_task = self._conversion_task, None
        if task is not None and not task.done():
            task.cancel()
        self._commit(transitions.reset())

    async def aclose(self) -> None:
        self.reset()
        self.notifications.clear()
        await self.client.aclose()
