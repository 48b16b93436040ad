"""One operator console session: state, refreshers and subscriptions wired together.

Both refresh producers, the state stream's invalidations and the polling
timer, call :meth:`ConsoleSession.reconcile`; neither writes state itself.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from ..config.settings import ConsoleSettings
from ..exceptions import ApiConnectionError, TaskdeckError
from ..models import TaskDetail
from .api_client import ConsoleApiClient
from .console_state import ConsoleStore
from .detail_refresher import DetailRefresher
from .log_stream import LogStreamSubscriber
from .polling import PollingFallback
from .synchronizer import StateSynchronizer, SyncHooks

logger = logging.getLogger(__name__)


def describe_error(error: BaseException) -> str:
    """Short user-facing text for an error."""
    if isinstance(error, TaskdeckError):
        return error.message
    return str(error) or error.__class__.__name__


class ConsoleSession:
    """Facade the presentation layer talks to.

    Example:
        async with ConsoleSession(ConsoleSettings.from_env()) as session:
            await session.select_task("abc")
            for view in session.diff_views():
                ...
    """

    def __init__(
        self,
        settings: Optional[ConsoleSettings] = None,
        *,
        client: Optional[ConsoleApiClient] = None,
        store: Optional[ConsoleStore] = None,
        polling: bool = True,
    ):
        self.settings = settings or ConsoleSettings()
        self.client = client or ConsoleApiClient(
            self.settings.api_url, timeout=self.settings.http_timeout_seconds
        )
        self.store = store or ConsoleStore()
        self.details = DetailRefresher(self.client, self.store)
        self.log_stream = LogStreamSubscriber(self.store, self.client.log_events)
        self.synchronizer = StateSynchronizer(
            SyncHooks(
                reconcile=self.reconcile,
                refresh_task_detail=self.details.refresh,
                selected_task_id=lambda: self.store.selected_task_id,
                set_environments=self.store.replace_environments,
                set_tasks=self.store.replace_tasks,
                set_account_state=self.store.replace_accounts,
                set_error=self.store.report_error,
            ),
            self.client.state_events if self.settings.push_enabled else None,
        )
        self.polling = PollingFallback(self.reconcile, self.settings.poll_interval_seconds)
        self.polling_enabled = polling
        self.started = False

    async def __aenter__(self) -> "ConsoleSession":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ── lifecycle ─────────────────────────────────────────────────────

    async def start(self) -> None:
        if self.started:
            return
        self.started = True
        self.log_stream.start()
        self.synchronizer.start(
            enabled=True,
            reconnect_refresh_seconds=self.settings.reconnect_refresh_seconds,
        )
        self.polling.start(enabled=self.polling_enabled)
        await self._guarded(self.refresh_all())

    async def stop(self) -> None:
        if not self.started:
            return
        self.started = False
        self.polling.stop()
        self.log_stream.stop()
        await self.synchronizer.aclose()

    async def aclose(self) -> None:
        """Stop and release the HTTP connections."""
        await self.stop()
        await self.client.aclose()

    # ── refresh entry points ──────────────────────────────────────────

    async def refresh_all(self) -> None:
        """Bulk refresh: replace environments, tasks and accounts."""
        snapshot = await self.client.fetch_snapshot()
        self.store.replace_snapshot(snapshot)

    async def reconcile(self) -> None:
        """Bulk refresh plus the selected task's detail, failures reported."""
        jobs = [self._guarded(self.refresh_all())]
        task_id = self.store.selected_task_id
        if task_id:
            jobs.append(self._guarded(self.details.refresh(task_id)))
        await asyncio.gather(*jobs)

    async def refresh_now(self) -> None:
        self.store.clear_error()
        await self.reconcile()

    async def _guarded(self, job: Any) -> None:
        try:
            await job
        except asyncio.CancelledError:
            raise
        except ApiConnectionError as e:
            logger.warning(f"Service unreachable, will retry: {e}")
        except Exception as e:
            logger.error(f"Refresh failed: {e}")
            self.store.report_error(describe_error(e))

    # ── presentation actions ──────────────────────────────────────────

    async def select_task(self, task_id: Optional[str]) -> Optional[TaskDetail]:
        """Select a task (None deselects) and load its detail."""
        self.store.select_task(task_id)
        if not task_id:
            return None
        try:
            return await self.details.load(task_id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Loading task {task_id} failed: {e}")
            self.store.report_error(describe_error(e))
            return None

    def reveal_diff(self, path: str) -> None:
        self.store.reveal_diff(path)

    def diff_views(self):
        return self.store.diff_views()
