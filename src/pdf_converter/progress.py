from __future__ import annotations

import asyncio
import logging
import math
import random
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ProgressTicker:
    """
    Simulated progress display for a conversion that already finished server-side.

    Each tick adds a random step in ``[min_step, max_step]`` and reports the
    clamped value through ``on_progress``. With ``min_step > 0`` the ticker
    reaches 100 within ``max_ticks`` ticks.
    """

    def __init__(
        self,
        on_progress: Callable[[float], None],
        interval: float = 0.2,
        min_step: float = 1.0,
        max_step: float = 20.0,
        rng: Optional[random.Random] = None,
    ) -> None:
        if min_step <= 0 or max_step < min_step:
            raise ValueError("Progress steps must satisfy 0 < min_step <= max_step")
        self.on_progress = on_progress
        self.interval = interval
        self.min_step = min_step
        self.max_step = max_step
        self._rng = rng or random.Random()
        self._task: Optional[asyncio.Task] = None

    @property
    def max_ticks(self) -> int:
        return math.ceil(100.0 / self.min_step)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Schedule the ticker on the running loop, cancelling a previous run."""
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.debug("Progress ticker cancelled")
        self._task = None

    async def wait(self) -> None:
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    async def _run(self) -> None:
        progress = 0.0
        while progress < 100.0:
            await asyncio.sleep(self.interval)
            progress = min(100.0, progress + self._rng.uniform(self.min_step, self.max_step))
            self.on_progress(progress)
