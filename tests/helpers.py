"""Payload builders and in-memory fakes shared by the taskdeck tests."""

import json
from typing import Any, Callable, Optional

import httpx

from taskdeck.services.event_source import ServerSentEvent


def task_payload(
    task_id: str = "task-1",
    status: str = "running",
    run_ids: tuple = ("run-1",),
    **extra: Any,
) -> dict:
    """Wire form of a task as the service lists it."""
    payload = {
        "taskId": task_id,
        "envId": "env-1",
        "status": status,
        "branchName": f"agent/{task_id}",
        "runs": [
            {"runId": run_id, "status": status, "startedAt": "2024-05-01T10:00:00Z", "prompt": "fix it"}
            for run_id in run_ids
        ],
    }
    payload.update(extra)
    return payload


def detail_payload(
    task_id: str = "task-1",
    status: str = "running",
    run_ids: tuple = ("run-1",),
    entries: Optional[dict] = None,
) -> dict:
    """Wire form of a task detail; ``entries`` maps run ids to entry ids."""
    entries = entries or {}
    payload = task_payload(task_id, status, run_ids)
    payload["runLogs"] = [
        {
            "runId": run_id,
            "status": status,
            "entries": [{"id": entry_id, "type": "text", "raw": entry_id} for entry_id in entries.get(run_id, ())],
        }
        for run_id in run_ids
    ]
    payload["logTail"] = ""
    return payload


def diff_payload(*files: dict) -> dict:
    return {"available": True, "baseSha": "abc123", "files": list(files)}


def json_response(data: Any, status: int = 200) -> httpx.Response:
    return httpx.Response(status, json=data)


class FakeEventSource:
    """In-memory stand-in for ``EventSource`` that tests drive by hand."""

    def __init__(self, url: str = "/stream"):
        self.url = url
        self.listeners: dict = {}
        self.opened = False
        self.closed = False

    def add_event_listener(self, event: str, listener: Callable) -> None:
        self.listeners.setdefault(event, []).append(listener)

    def remove_event_listener(self, event: str, listener: Callable) -> None:
        if listener in self.listeners.get(event, []):
            self.listeners[event].remove(listener)

    def listener_count(self) -> int:
        return sum(len(listeners) for listeners in self.listeners.values())

    def open(self) -> None:
        self.opened = True

    def close(self) -> None:
        self.closed = True

    async def aclose(self) -> None:
        self.close()

    def emit(self, event: str, payload: Any = None) -> None:
        for listener in list(self.listeners.get(event, [])):
            listener(payload)

    def emit_data(self, event: str, data: Any) -> None:
        """Dispatch a named event whose data is ``data`` (JSON-encoded unless a str)."""
        text = data if isinstance(data, str) else json.dumps(data)
        self.emit(event, ServerSentEvent(event=event, data=text))


BIG_FILE = {"path": "big.py", "diff": "@@ -1 +1 @@\n+x\n", "lineCount": 900, "tooLarge": True}


class FakeService:
    """Answers the console's endpoints from mutable in-memory state."""

    def __init__(self):
        self.tasks = [task_payload("task-1", "running"), task_payload("task-2", "completed")]
        self.details = {
            "task-1": detail_payload("task-1", "running", entries={"run-1": ["e1"]}),
            "task-2": detail_payload("task-2", "completed"),
        }
        self.diffs = {"task-1": diff_payload(BIG_FILE)}
        self.envs = [{"envId": "env-1"}]
        self.accounts = {"accounts": [], "activeAccountId": None}
        self.fail_with = None
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(path)
        if self.fail_with is not None:
            if isinstance(self.fail_with, Exception):
                raise self.fail_with
            return httpx.Response(self.fail_with, text="service error")
        if path == "/api/envs":
            return json_response(self.envs)
        if path == "/api/tasks":
            return json_response(self.tasks)
        if path == "/api/accounts":
            return json_response(self.accounts)
        task_id = path.split("/")[3]
        if path.endswith("/diff"):
            if task_id not in self.diffs:
                return httpx.Response(404)
            return json_response(self.diffs[task_id])
        if task_id not in self.details:
            return httpx.Response(404)
        return json_response(self.details[task_id])

    def count(self, path: str) -> int:
        return self.requests.count(path)
