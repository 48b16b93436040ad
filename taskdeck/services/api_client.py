"""HTTP client for the orchestration service.

Wraps ``httpx.AsyncClient`` and maps transport and status failures onto the
taskdeck exception hierarchy, so callers can tell a 404 (absence) from other
failures.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from ..config.constants import (
    ACCOUNTS_PATH,
    ENVS_PATH,
    HTTP_TIMEOUT_SECONDS,
    SSE_RETRY_SECONDS,
    STATE_STREAM_PATH,
    TASKS_PATH,
)
from ..exceptions import ApiConnectionError, ApiNotFoundError, ApiResponseError
from ..models import AccountState, CollectionSnapshot, TaskDetail, TaskDiff
from ..models.snapshot import coerce_environments, coerce_tasks
from .event_source import EventSource

logger = logging.getLogger(__name__)


def task_path(task_id: str) -> str:
    return f"{TASKS_PATH}/{quote(task_id, safe='')}"


def log_stream_path(task_id: str, run_id: str) -> str:
    return f"{task_path(task_id)}/logs/stream?runId={quote(run_id, safe='')}"


class ConsoleApiClient:
    """Async client for the endpoints the console reads."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sse_retry_seconds: float = SSE_RETRY_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.sse_retry_seconds = sse_retry_seconds
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        # Streams stay open indefinitely, so they get their own read timeout
        self._stream_client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout, read=None),
            transport=transport,
        )

    async def __aenter__(self) -> "ConsoleApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()
        await self._stream_client.aclose()

    async def request_json(self, path: str) -> Any:
        """GET ``path`` and decode the JSON body.

        Raises:
            ApiNotFoundError: On HTTP 404.
            ApiResponseError: On any other non-2xx status or an undecodable body.
            ApiConnectionError: When the service cannot be reached.
        """
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.get(path)
        except httpx.TransportError as e:
            raise ApiConnectionError(f"Could not reach service: {e}", url=url) from e

        if response.status_code == 404:
            raise ApiNotFoundError(response.text or "Not found", url=url)
        if response.is_error:
            message = response.text or f"Request failed: {response.status_code}"
            raise ApiResponseError(message, status=response.status_code, url=url)
        if response.status_code == 204:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise ApiResponseError(
                "Response was not valid JSON", status=response.status_code, url=url
            ) from e

    async def list_envs(self) -> Any:
        return await self.request_json(ENVS_PATH)

    async def list_tasks(self) -> Any:
        return await self.request_json(TASKS_PATH)

    async def list_accounts(self) -> Any:
        return await self.request_json(ACCOUNTS_PATH)

    async def fetch_snapshot(self) -> CollectionSnapshot:
        """Fetch environments, tasks and accounts concurrently."""
        envs, tasks, accounts = await asyncio.gather(
            self.list_envs(), self.list_tasks(), self.list_accounts()
        )
        return CollectionSnapshot(
            environments=coerce_environments(envs),
            tasks=coerce_tasks(tasks),
            accounts=AccountState.normalize(accounts),
        )

    async def get_task(self, task_id: str) -> TaskDetail:
        data = await self.request_json(task_path(task_id))
        try:
            return TaskDetail.from_api(data)
        except ValueError as e:
            raise ApiResponseError(str(e), status=200, url=f"{self.base_url}{task_path(task_id)}") from e

    async def get_task_diff(self, task_id: str) -> TaskDiff:
        data = await self.request_json(f"{task_path(task_id)}/diff")
        return TaskDiff.from_api(data)

    def event_source(self, path: str) -> EventSource:
        """An unopened push subscription for ``path``."""
        return EventSource(self._stream_client, path, retry_seconds=self.sse_retry_seconds)

    def state_events(self) -> EventSource:
        return self.event_source(STATE_STREAM_PATH)

    def log_events(self, task_id: str, run_id: str) -> EventSource:
        return self.event_source(log_stream_path(task_id, run_id))
