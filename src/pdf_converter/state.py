"""
Pure state transitions for the upload session.

Every function takes a ``SessionSnapshot`` and returns the next one; none of
them perform I/O or touch the notification center. ``UploadSession`` commits
the returned snapshot and publishes it to its listeners.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Optional, Sequence, Tuple

from .models import ConversionResult, ErrorKind, PendingFile, SessionState
from .utils import MAX_FILE_SIZE, is_valid_file


@dataclass(frozen=True)
class SessionSnapshot:
    state: SessionState = SessionState.IDLE
    files: Tuple[PendingFile, ...] = ()
    result: Optional[ConversionResult] = None
    progress: float = 0.0
    last_error: Optional[ErrorKind] = None

    @property
    def convert_enabled(self) -> bool:
        return bool(self.files) and self.state in (SessionState.FILES_QUEUED, SessionState.FAILED)


@dataclass(frozen=True)
class AddOutcome:
    snapshot: SessionSnapshot
    added: Tuple[PendingFile, ...]
    skipped: Tuple[PendingFile, ...]


def queued_state(files: Sequence[PendingFile]) -> SessionState:
    return SessionState.FILES_QUEUED if files else SessionState.IDLE


def add_files(
    snapshot: SessionSnapshot,
    candidates: Iterable[PendingFile],
    accepted_types: Optional[Iterable[str]] = None,
    max_size: int = MAX_FILE_SIZE,
) -> AddOutcome:
    """
    Validate candidates and append the new ones to the queue in arrival order.

    Files already queued under the same (name, size), including duplicates
    within ``candidates``, are dropped silently. Adding files to a completed
    session discards the previous result and makes the queue convertible again.
    """
    types = None if accepted_types is None else frozenset(accepted_types)
    files = list(snapshot.files)
    seen = {f.key for f in files}
    added = []
    skipped = []

    for candidate in candidates:
        if not is_valid_file(candidate, types, max_size):
            skipped.append(candidate)
            continue
        if candidate.key in seen:
            continue
        seen.add(candidate.key)
        files.append(candidate)
        added.append(candidate)

    if not added:
        return AddOutcome(snapshot=snapshot, added=(), skipped=tuple(skipped))

    if snapshot.state == SessionState.COMPLETED:
        next_snapshot = SessionSnapshot(state=SessionState.FILES_QUEUED, files=tuple(files))
    else:
        next_snapshot = replace(snapshot, files=tuple(files), state=queued_state(files))
    return AddOutcome(snapshot=next_snapshot, added=tuple(added), skipped=tuple(skipped))


def remove_file(snapshot: SessionSnapshot, index: int) -> SessionSnapshot:
    """Drop the entry at ``index``; out-of-range indices return the snapshot unchanged."""
    if index < 0 or index >= len(snapshot.files):
        return snapshot
    files = snapshot.files[:index] + snapshot.files[index + 1 :]
    if snapshot.state == SessionState.COMPLETED:
        return replace(snapshot, files=files)
    return replace(snapshot, files=files, state=queued_state(files))


def begin_conversion(snapshot: SessionSnapshot) -> SessionSnapshot:
    return replace(snapshot, state=SessionState.CONVERTING, progress=0.0, last_error=None, result=None)


def conversion_succeeded(snapshot: SessionSnapshot, result: ConversionResult) -> SessionSnapshot:
    return replace(snapshot, result=result, progress=0.0)


def progress_advanced(snapshot: SessionSnapshot, progress: float) -> SessionSnapshot:
    progress = max(snapshot.progress, min(progress, 100.0))
    if progress >= 100.0 and snapshot.result is not None:
        return replace(snapshot, progress=100.0, state=SessionState.COMPLETED)
    return replace(snapshot, progress=progress)


def conversion_failed(snapshot: SessionSnapshot, kind: ErrorKind) -> SessionSnapshot:
    return replace(snapshot, state=SessionState.FAILED, last_error=kind, progress=0.0, result=None)


def failure_settled(snapshot: SessionSnapshot) -> SessionSnapshot:
    return replace(snapshot, state=queued_state(snapshot.files))


def reset() -> SessionSnapshot:
    return SessionSnapshot()
