"""Tests for ephemeral notifications, the progress ticker and the render step."""

import asyncio
import random

import pytest

from pdf_converter.models import ConversionResult, NotificationLevel, PendingFile, SessionState
from pdf_converter.notifications import NotificationCenter
from pdf_converter.progress import ProgressTicker
from pdf_converter.render import CONVERTING_LABEL, build_view, format_view
from pdf_converter.state import SessionSnapshot


class TestNotificationCenter:
    def test_notifications_expire_after_ttl(self, clock):
        center = NotificationCenter(ttl=3.0, clock=clock)
        center.notify("Some files were skipped", NotificationLevel.WARNING)

        clock.advance(2.9)
        assert len(center.active()) == 1
        clock.advance(0.2)
        assert center.active() == []

    def test_listeners_receive_active_set(self, clock):
        center = NotificationCenter(clock=clock)
        received = []
        center.subscribe(lambda active: received.append([n.message for n in active]))

        first = center.notify("one")
        center.notify("two", NotificationLevel.ERROR)
        center.dismiss(first.id)

        assert received == [["one"], ["one", "two"], ["two"]]

    @pytest.mark.asyncio
    async def test_dismissal_is_scheduled_on_running_loop(self):
        center = NotificationCenter(ttl=0.01)
        received = []
        center.subscribe(lambda active: received.append(len(active)))
        center.notify("bye")

        await asyncio.sleep(0.05)
        assert received == [1, 0]

    @pytest.mark.asyncio
    async def test_clear_cancels_timers(self):
        center = NotificationCenter(ttl=0.01)
        received = []
        center.notify("gone")
        center.subscribe(lambda active: received.append(len(active)))
        center.clear()

        await asyncio.sleep(0.05)
        assert received == []
        assert center.active() == []


class TestProgressTicker:
    def test_rejects_non_positive_min_step(self):
        with pytest.raises(ValueError):
            ProgressTicker(lambda value: None, min_step=0)

    @pytest.mark.asyncio
    async def test_runs_to_one_hundred(self):
        values = []
        ticker = ProgressTicker(values.append, interval=0, rng=random.Random(1))
        ticker.start()
        await ticker.wait()

        assert values == sorted(values)
        assert values[-1] == 100.0
        assert len(values) <= ticker.max_ticks
        assert not ticker.running

    @pytest.mark.asyncio
    async def test_cancel_stops_updates(self):
        values = []
        ticker = ProgressTicker(values.append, interval=0.01)
        ticker.start()
        assert ticker.running
        ticker.cancel()
        await asyncio.sleep(0.03)

        assert values == []
        assert not ticker.running


class TestRender:
    def test_idle_view(self):
        view = build_view(SessionSnapshot())
        assert view.state == SessionState.IDLE
        assert view.files == []
        assert view.convert_enabled is False
        assert view.show_conversion_section is False
        assert view.show_result_section is False

    def test_queued_view_lists_files(self):
        snapshot = SessionSnapshot(
            state=SessionState.FILES_QUEUED,
            files=(PendingFile(name="a.png", size=1536, mime_type="image/png"),),
        )
        view = build_view(snapshot)

        assert view.files[0].icon == "PNG"
        assert view.files[0].size_label == "1.5 KB"
        assert view.convert_enabled is True
        assert "  0. [PNG] a.png (1.5 KB)" in format_view(view)

    def test_converting_view_disables_trigger(self):
        snapshot = SessionSnapshot(
            state=SessionState.CONVERTING,
            files=(PendingFile(name="a.png", size=10, mime_type="image/png"),),
            progress=42.4,
        )
        view = build_view(snapshot)

        assert view.convert_enabled is False
        assert view.convert_label == CONVERTING_LABEL
        assert view.progress_label == "42%"

    def test_completed_view_shows_result(self):
        result = ConversionResult(download_url="/api/download/x/a.pdf", filename="a.pdf")
        snapshot = SessionSnapshot(state=SessionState.COMPLETED, result=result, progress=100.0)
        view = build_view(snapshot)

        assert view.show_result_section is True
        assert view.show_conversion_section is False
        assert view.result == result
        assert view.model_dump(by_alias=True)["result"]["downloadUrl"] == "/api/download/x/a.pdf"

    def test_render_is_idempotent(self):
        snapshot = SessionSnapshot(
            state=SessionState.FILES_QUEUED,
            files=(PendingFile(name="a.txt", size=3, mime_type="text/plain"),),
        )
        assert build_view(snapshot) == build_view(snapshot)
