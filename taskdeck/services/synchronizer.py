"""Keeping the collection snapshot in step with the service.

The synchronizer holds one subscription to the state stream. The ``init``
event carries a full snapshot; every invalidation event, whatever its kind,
triggers the same full reconciliation. Channel errors also reconcile, but
at most once per ``reconnect_refresh_seconds``. Without a push primitive
the synchronizer reconciles on a fixed interval instead.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional

from ..config.constants import (
    ERROR_EVENT,
    INIT_EVENT,
    INVALIDATION_EVENTS,
    RECONNECT_REFRESH_SECONDS,
)
from ..models import AccountState, Environment, Task
from ..models.snapshot import coerce_environments, coerce_tasks
from .event_source import EventSource, ServerSentEvent
from .scheduling import Interval

logger = logging.getLogger(__name__)

INIT_PARSE_ERROR = "Failed to parse app state stream payload."


@dataclass
class SyncHooks:
    """What the synchronizer may call; it never touches state directly."""

    reconcile: Callable[[], Awaitable[None]]
    refresh_task_detail: Callable[[str], Awaitable[Any]]
    selected_task_id: Callable[[], Optional[str]]
    set_environments: Callable[[Iterable[Environment]], None]
    set_tasks: Callable[[Iterable[Task]], None]
    set_account_state: Callable[[AccountState], None]
    set_error: Callable[[Optional[str]], None]


class StateSynchronizer:
    """Owns the push subscription that keeps the collections current."""

    def __init__(
        self,
        hooks: SyncHooks,
        open_stream: Optional[Callable[[], EventSource]],
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.hooks = hooks
        self.open_stream = open_stream
        self.clock = clock
        self.enabled = False
        self.reconnect_refresh_seconds = RECONNECT_REFRESH_SECONDS
        self.source: Optional[EventSource] = None
        self.fallback: Optional[Interval] = None
        self.last_error_refresh_at: Optional[float] = None
        self.error_refreshes = 0
        self._pending: set[asyncio.Task] = set()
        self._listeners: list[tuple[str, Callable[[Any], Any]]] = []

    @property
    def degraded(self) -> bool:
        """True when running on interval refresh for lack of a push channel."""
        return self.fallback is not None

    def start(
        self,
        enabled: bool = True,
        reconnect_refresh_seconds: float = RECONNECT_REFRESH_SECONDS,
    ) -> None:
        """Subscribe (or fall back to interval refresh). Must run on the loop."""
        self.stop()
        self.enabled = enabled
        self.reconnect_refresh_seconds = reconnect_refresh_seconds
        if not enabled:
            return

        if self.open_stream is None:
            logger.warning(f"Push channel unavailable, refreshing every {reconnect_refresh_seconds}s")
            self._schedule(self._reconcile())
            self.fallback = Interval(
                reconnect_refresh_seconds, self._reconcile, name="state-sync-fallback"
            )
            self.fallback.start()
            return

        source = self.open_stream()
        self._listeners = [(INIT_EVENT, self._on_init)]
        self._listeners += [(name, self._on_invalidation) for name in INVALIDATION_EVENTS]
        self._listeners.append((ERROR_EVENT, self._on_error))
        for name, listener in self._listeners:
            source.add_event_listener(name, listener)
        self.source = source
        source.open()

    def stop(self) -> None:
        """Close the channel, detach listeners and cancel pending work."""
        self.enabled = False
        if self.source is not None:
            for name, listener in self._listeners:
                self.source.remove_event_listener(name, listener)
            self.source.close()
            self.source = None
        self._listeners = []
        if self.fallback is not None:
            self.fallback.stop()
            self.fallback = None
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()

    async def aclose(self) -> None:
        pending = list(self._pending)
        source = self.source
        self.stop()
        if source is not None:
            await source.aclose()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # ── event handlers ────────────────────────────────────────────────

    def _on_init(self, event: ServerSentEvent) -> None:
        try:
            payload = json.loads(event.data)
        except ValueError as e:
            logger.warning(f"Malformed init payload: {e}")
            self.hooks.set_error(INIT_PARSE_ERROR)
            return
        if not isinstance(payload, dict):
            payload = {}

        self.hooks.set_environments(coerce_environments(payload.get("envs")))
        self.hooks.set_tasks(coerce_tasks(payload.get("tasks")))
        self.hooks.set_account_state(AccountState.normalize(payload.get("accounts")))

        task_id = self.hooks.selected_task_id()
        if task_id:
            self._schedule(self._refresh_detail(task_id))

    def _on_invalidation(self, event: ServerSentEvent) -> None:
        logger.debug(f"Invalidation {event.event}, reconciling")
        self._schedule(self._reconcile())

    def _on_error(self, error: Exception) -> None:
        now = self.clock()
        last = self.last_error_refresh_at
        if last is not None and now - last < self.reconnect_refresh_seconds:
            return
        self.last_error_refresh_at = now
        self.error_refreshes += 1
        logger.info(f"State stream error ({error}), reconciling")
        self._schedule(self._reconcile())

    # ── helpers ───────────────────────────────────────────────────────

    def _schedule(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _reconcile(self) -> None:
        try:
            await self.hooks.reconcile()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Reconciliation failed: {e}")

    async def _refresh_detail(self, task_id: str) -> None:
        try:
            await self.hooks.refresh_task_detail(task_id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.hooks.set_error(getattr(e, "message", None) or str(e))
