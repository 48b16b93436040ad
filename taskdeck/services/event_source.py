"""Server-Sent-Events subscriptions over httpx.

``EventSource`` behaves like the browser primitive of the same name: it
connects, dispatches named events to listeners, reports an ``error`` each
time the connection fails or ends, and reconnects after the retry delay
until ``close()`` is called.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from contextlib import suppress
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, AsyncIterable, AsyncIterator, Callable, Optional

import httpx

from ..config.constants import ERROR_EVENT, MESSAGE_EVENT, SSE_RETRY_SECONDS
from ..exceptions import StreamError

logger = logging.getLogger(__name__)

OPEN_EVENT = "open"

Listener = Callable[[Any], Any]


class ReadyState(IntEnum):
    CONNECTING = 0
    OPEN = 1
    CLOSED = 2


@dataclass(frozen=True)
class ServerSentEvent:
    event: str = MESSAGE_EVENT
    data: str = ""
    id: Optional[str] = None


class SSEDecoder:
    """Line-at-a-time decoder for the text/event-stream format."""

    def __init__(self) -> None:
        self._event = ""
        self._data: list[str] = []
        self.last_event_id: Optional[str] = None
        self.retry: Optional[int] = None  # milliseconds

    def decode(self, line: str) -> Optional[ServerSentEvent]:
        """Feed one line (without terminator); returns an event on dispatch."""
        if not line:
            data = "\n".join(self._data)
            name = self._event or MESSAGE_EVENT
            self._event = ""
            self._data = []
            if not data:
                return None
            return ServerSentEvent(event=name, data=data, id=self.last_event_id)

        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        elif field == "id":
            if "\0" not in value:
                self.last_event_id = value
        elif field == "retry":
            if value.isdigit():
                self.retry = int(value)
        return None


async def iter_sse(lines: AsyncIterable[str]) -> AsyncIterator[ServerSentEvent]:
    """Decode an async stream of lines into events."""
    decoder = SSEDecoder()
    async for line in lines:
        event = decoder.decode(line)
        if event is not None:
            yield event


class EventSource:
    """A long-lived, self-reconnecting push subscription."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        retry_seconds: float = SSE_RETRY_SECONDS,
    ):
        self.url = url
        self.retry_seconds = retry_seconds
        self.ready_state = ReadyState.CONNECTING
        self.last_event_id: Optional[str] = None
        self._client = client
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._task: Optional[asyncio.Task] = None

    @property
    def closed(self) -> bool:
        return self.ready_state is ReadyState.CLOSED

    def add_event_listener(self, event: str, listener: Listener) -> None:
        if listener not in self._listeners[event]:
            self._listeners[event].append(listener)

    def remove_event_listener(self, event: str, listener: Listener) -> None:
        if listener in self._listeners.get(event, ()):
            self._listeners[event].remove(listener)

    def listener_count(self) -> int:
        return sum(len(listeners) for listeners in self._listeners.values())

    def open(self) -> None:
        """Start the reader task on the running loop."""
        if self._task is not None or self.closed:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"event-source:{self.url}"
        )

    def close(self) -> None:
        """Stop reading and never reconnect. Safe to call repeatedly."""
        self.ready_state = ReadyState.CLOSED
        if self._task is not None and not self._task.done():
            try:
                current = asyncio.current_task()
            except RuntimeError:
                current = None
            # A listener closing its own source finishes the current dispatch first
            if self._task is not current:
                self._task.cancel()

    async def aclose(self) -> None:
        """Close and wait for the reader task to finish."""
        self.close()
        task = self._task
        if task is not None and task is not asyncio.current_task():
            with suppress(asyncio.CancelledError):
                await task

    async def _run(self) -> None:
        while not self.closed:
            try:
                await self._connect_once()
                error: Exception = StreamError("Event stream ended", url=self.url)
            except StreamError as e:
                error = e
            except httpx.HTTPError as e:
                error = StreamError(f"Event stream failed: {e}", url=self.url)

            if self.closed:
                return
            self.ready_state = ReadyState.CONNECTING
            logger.debug(f"Event stream {self.url} interrupted: {error}")
            await self._dispatch(ERROR_EVENT, error)
            if self.closed:
                return
            await asyncio.sleep(self.retry_seconds)

    async def _connect_once(self) -> None:
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        if self.last_event_id:
            headers["Last-Event-ID"] = self.last_event_id

        async with self._client.stream("GET", self.url, headers=headers) as response:
            if response.status_code != 200:
                raise StreamError(
                    "Event stream refused", url=self.url, status=response.status_code
                )
            self.ready_state = ReadyState.OPEN
            await self._dispatch(OPEN_EVENT, None)

            decoder = SSEDecoder()
            async for line in response.aiter_lines():
                if self.closed:
                    return
                event = decoder.decode(line)
                if decoder.retry is not None:
                    self.retry_seconds = decoder.retry / 1000
                if event is None:
                    continue
                if event.id is not None:
                    self.last_event_id = event.id
                await self._dispatch(event.event, event)

    async def _dispatch(self, name: str, payload: Any) -> None:
        for listener in list(self._listeners.get(name, ())):
            try:
                result = listener(payload)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error in {name!r} listener for {self.url}: {e}")
