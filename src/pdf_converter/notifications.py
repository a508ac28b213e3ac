"""
Ephemeral user notifications.

Notifications expire ``ttl`` seconds after they are raised. When an asyncio
loop is running the center schedules the dismissal with ``loop.call_later``
so listeners see the notification disappear; without a loop, expired entries
are simply filtered out by ``active()``.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List

from .models import Notification, NotificationLevel

logger = logging.getLogger(__name__)

NotificationListener = Callable[[List[Notification]], None]


class NotificationCenter:
    def __init__(self, ttl: float = 3.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._ids = itertools.count(1)
        self._active: Dict[int, Notification] = {}
        self._timers: Dict[int, asyncio.TimerHandle] = {}
        self._listeners: List[NotificationListener] = []

    def subscribe(self, listener: NotificationListener) -> None:
        self._listeners.append(listener)

    def notify(self, message: str, level: NotificationLevel = NotificationLevel.INFO) -> Notification:
        notification = Notification(
            id=next(self._ids),
            message=message,
            level=level,
            created_at=datetime.now(timezone.utc),
            expires_at=self._clock() + self.ttl,
        )
        self._active[notification.id] = notification
        logger.log(_LOG_LEVELS[level], "Notification: %s", message)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            self._timers[notification.id] = loop.call_later(self.ttl, self.dismiss, notification.id)

        self._publish()
        return notification

    def dismiss(self, notification_id: int) -> None:
        timer = self._timers.pop(notification_id, None)
        if timer is not None:
            timer.cancel()
        if self._active.pop(notification_id, None) is not None:
            self._publish()

    def active(self) -> List[Notification]:
        now = self._clock()
        for expired in [n.id for n in self._active.values() if n.expires_at <= now]:
            self._active.pop(expired, None)
            timer = self._timers.pop(expired, None)
            if timer is not None:
                timer.cancel()
        return list(self._active.values())

    def clear(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._active.clear()

    def _publish(self) -> None:
        snapshot = self.active()
        for listener in list(self._listeners):
            listener(snapshot)


_LOG_LEVELS: Dict[NotificationLevel, int] = {
    NotificationLevel.INFO: logging.INFO,
    NotificationLevel.WARNING: logging.WARNING,
    NotificationLevel.ERROR: logging.ERROR,
}
