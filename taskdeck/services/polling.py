"""Fixed-interval safety net that reconciles regardless of push health."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from ..config.constants import POLL_INTERVAL_SECONDS
from .scheduling import Interval

logger = logging.getLogger(__name__)


class PollingFallback:
    """Re-run reconciliation every ``interval_seconds``.

    Runs alongside the state synchronizer, not instead of it, so a missed
    invalidation is corrected within one interval.
    """

    def __init__(
        self,
        reconcile: Callable[[], Awaitable[None]],
        interval_seconds: float = POLL_INTERVAL_SECONDS,
    ):
        self.reconcile = reconcile
        self.interval_seconds = interval_seconds
        self._timer: Interval | None = None

    @property
    def running(self) -> bool:
        return self._timer is not None and self._timer.running

    def start(self, enabled: bool = True) -> None:
        self.stop()
        if not enabled:
            return
        self._timer = Interval(self.interval_seconds, self._tick, name="polling-fallback")
        self._timer.start()

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer = None

    async def _tick(self) -> None:
        try:
            await self.reconcile()
        except Exception as e:
            logger.warning(f"Polling refresh failed: {e}")
