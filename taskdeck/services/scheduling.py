"""Fixed-interval timers on the asyncio loop."""

from __future__ import annotations

import asyncio
import inspect
import logging
from contextlib import suppress
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class Interval:
    """Call ``callback`` every ``seconds`` until stopped.

    The first call happens one interval after ``start()``. Coroutine
    callbacks are awaited before the next tick is scheduled, and a failing
    callback is logged without stopping the timer.
    """

    def __init__(self, seconds: float, callback: Callable[[], Any], *, name: str = "interval"):
        if seconds <= 0:
            raise ValueError("interval must be positive")
        self.seconds = seconds
        self.callback = callback
        self.name = name
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop(), name=self.name)

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def aclose(self) -> None:
        task = self._task
        self.stop()
        if task is not None:
            with suppress(asyncio.CancelledError):
                await task

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.seconds)
            self.ticks += 1
            try:
                result = self.callback()
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Timer {self.name} callback failed: {e}")
