"""Idempotent render step: session snapshot -> view model -> text."""

from __future__ import annotations

from typing import List, Sequence

from .models import FileEntryView, Notification, SessionState, SessionView
from .state import SessionSnapshot
from .utils import file_icon, format_file_size

CONVERT_LABEL = "Convert to PDF"
CONVERTING_LABEL = "Converting..."


def build_view(snapshot: SessionSnapshot, notifications: Sequence[Notification] = ()) -> SessionView:
    files = [
        FileEntryView(index=index, name=f.name, icon=file_icon(f.mime_type), size_label=format_file_size(f.size))
        for index, f in enumerate(snapshot.files)
    ]
    completed = snapshot.state == SessionState.COMPLETED
    progress = int(round(snapshot.progress))
    return SessionView(
        state=snapshot.state,
        files=files,
        convert_enabled=snapshot.convert_enabled,
        show_conversion_section=bool(files) and not completed,
        show_result_section=completed,
        convert_label=CONVERTING_LABEL if snapshot.state == SessionState.CONVERTING else CONVERT_LABEL,
        progress=progress,
        progress_label=f"{progress}%",
        result=snapshot.result if completed else None,
        last_error=snapshot.last_error,
        notifications=list(notifications),
    )


def format_view(view: SessionView) -> List[str]:
    lines = [f"[{view.state.value}]"]
    for entry in view.files:
        lines.append(f"  {entry.index}. [{entry.icon}] {entry.name} ({entry.size_label})")
    if view.show_conversion_section:
        button = "enabled" if view.convert_enabled else "disabled"
        lines.append(f"  {view.convert_label} ({button}) {view.progress_label}")
    if view.show_result_section and view.result is not None:
        lines.append(f"  Ready: {view.result.filename}")
    for notification in view.notifications:
        lines.append(f"  ! {notification.level.value}: {notification.message}")
    return lines
