"""Live log streaming for the selected task's latest run."""

from __future__ import annotations

import json
import logging
from typing import Callable, Optional

from ..config.constants import ERROR_EVENT, MESSAGE_EVENT
from ..models import ACTIVE_STATUSES, LogEntry, TaskDetail
from .console_state import DETAIL, SELECTION, ConsoleStore
from .event_source import EventSource, ServerSentEvent
from .log_merger import apply_log_entry

logger = logging.getLogger(__name__)

StreamKey = tuple[str, str]  # (task_id, run_id)
StreamOpener = Callable[[str, str], EventSource]


def parse_log_message(data: str) -> Optional[tuple[str, LogEntry]]:
    """Decode one log stream message into ``(run_id, entry)``.

    Returns None for anything that is not an object carrying both a run id
    and a valid entry.
    """
    try:
        payload = json.loads(data)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    run_id = payload.get("runId")
    raw_entry = payload.get("entry")
    if not run_id or not raw_entry:
        return None
    try:
        return str(run_id), LogEntry.from_api(raw_entry)
    except ValueError:
        return None


class LogStreamSubscriber:
    """Keeps at most one log subscription open, for the selected active task.

    The subscription exists only while the selected task is running or
    stopping and has a run; it follows the task's latest run. Switching
    tasks, a new run, or the task going idle closes the previous
    subscription before anything else happens. Incoming entries are merged
    into the matching run of the store's detail through the log merger.
    """

    def __init__(self, store: ConsoleStore, open_stream: StreamOpener):
        self.store = store
        self.open_stream = open_stream
        self.source: Optional[EventSource] = None
        self.key: Optional[StreamKey] = None
        self.received = 0
        self.dropped = 0
        self._unsubscribe: Optional[Callable[[], None]] = None

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._on_store_change)
        self.sync()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._close()

    def desired_key(self) -> Optional[StreamKey]:
        """The (task, run) pair that should be streamed right now, if any."""
        task_id = self.store.selected_task_id
        detail = self.store.detail
        if not task_id or detail is None or detail.task_id != task_id:
            return None
        if detail.status not in ACTIVE_STATUSES:
            return None
        run_id = detail.latest_run_id
        if not run_id:
            return None
        return (task_id, run_id)

    def sync(self) -> None:
        """Open, switch or close the subscription to match the store."""
        key = self.desired_key()
        if key == self.key:
            return
        self._close()
        if key is not None:
            self._open(key)

    def _on_store_change(self, slice_name: str) -> None:
        if slice_name in (SELECTION, DETAIL):
            self.sync()

    def _open(self, key: StreamKey) -> None:
        task_id, run_id = key
        source = self.open_stream(task_id, run_id)

        def on_message(event: ServerSentEvent) -> None:
            self._handle_message(task_id, event)

        source.add_event_listener(MESSAGE_EVENT, on_message)
        source.add_event_listener(ERROR_EVENT, self._handle_error)
        self.source = source
        self.key = key
        source.open()
        logger.debug(f"Streaming logs for task {task_id} run {run_id}")

    def _close(self) -> None:
        source = self.source
        self.source = None
        self.key = None
        if source is not None:
            source.close()
            logger.debug(f"Closed log stream {source.url}")

    def _handle_message(self, task_id: str, event: ServerSentEvent) -> None:
        parsed = parse_log_message(event.data)
        if parsed is None:
            logger.debug(f"Ignoring log message for {task_id}")
            return
        run_id, entry = parsed
        self.received += 1

        def merge(detail: TaskDetail) -> TaskDetail:
            if detail.task_id != task_id:
                return detail
            return apply_log_entry(detail, run_id, entry)

        if not self.store.update_detail(merge):
            self.dropped += 1

    def _handle_error(self, error: Exception) -> None:
        logger.debug(f"Log stream error, reconnecting: {error}")
