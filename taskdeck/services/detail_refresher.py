"""Fetching the selected task's detail and diff."""

from __future__ import annotations

import logging
from typing import Optional

from ..exceptions import ApiNotFoundError
from ..models import TaskDetail, TaskDiff
from .api_client import ConsoleApiClient
from .console_state import ConsoleStore

logger = logging.getLogger(__name__)


class DetailRefresher:
    """Owns the selected task's detail object in the store.

    A 404 on the diff means the diff is not computable yet and is stored as
    :meth:`TaskDiff.not_ready`. A 404 on the detail means the task was
    deleted elsewhere: the selection is cleared and nothing is raised.
    Every other failure propagates to the caller.
    """

    def __init__(self, client: ConsoleApiClient, store: ConsoleStore):
        self.client = client
        self.store = store

    async def load(self, task_id: Optional[str]) -> Optional[TaskDetail]:
        """Fresh load after a selection change; withholds large diffs again."""
        return await self.refresh(task_id, reset_reveals=True)

    async def refresh(self, task_id: Optional[str], *, reset_reveals: bool = False) -> Optional[TaskDetail]:
        """Fetch detail and diff for ``task_id`` and store them.

        Responses for a task that is no longer selected when they arrive are
        dropped. Returns the stored detail, or None when nothing was stored.
        Reconciling refreshes (push, poll, refresh-now) keep reveal flags;
        only ``load()`` after a new selection passes ``reset_reveals``.
        """
        if not task_id:
            return None

        try:
            detail = await self.client.get_task(task_id)
        except ApiNotFoundError:
            logger.info(f"Task {task_id} no longer exists, clearing selection")
            if self.store.selected_task_id == task_id:
                self.store.clear_selection()
            return None

        diff = await self._fetch_diff(task_id)

        if self.store.selected_task_id != task_id:
            logger.debug(f"Dropping late detail for {task_id}, selection is {self.store.selected_task_id}")
            return None

        self.store.set_detail(detail, diff, reset_reveals=reset_reveals)
        return detail

    async def _fetch_diff(self, task_id: str) -> TaskDiff:
        try:
            return await self.client.get_task_diff(task_id)
        except ApiNotFoundError:
            return TaskDiff.not_ready()
