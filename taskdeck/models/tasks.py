"""Task, run and log-entry models.

All models are frozen; updates go through ``dataclasses.replace`` so that
consumers comparing by identity see every change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)


class TaskStatus(str, Enum):
    """Lifecycle status of a task."""

    RUNNING = "running"
    STOPPING = "stopping"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "TaskStatus":
        """Parse a wire status, mapping anything unrecognised to UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


ACTIVE_STATUSES = frozenset({TaskStatus.RUNNING, TaskStatus.STOPPING})


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class LogEntry:
    """One atomic unit of streamed run output.

    ``id`` is unique within a run and is the deduplication key.
    """

    id: str
    type: str = "text"
    parsed: Any = None
    raw: str = ""

    @classmethod
    def from_api(cls, data: Any) -> "LogEntry":
        """Build an entry from its wire form.

        Raises:
            ValueError: If the payload is not an object or has no id.
        """
        if not isinstance(data, dict):
            raise ValueError("log entry must be an object")
        entry_id = data.get("id")
        if entry_id is None or entry_id == "":
            raise ValueError("log entry has no id")
        return cls(
            id=str(entry_id),
            type=str(data.get("type") or "text"),
            parsed=data.get("parsed"),
            raw=data.get("raw") or "",
        )


@dataclass(frozen=True)
class Artifact:
    """A file a run produced, as listed by the server."""

    path: str
    size: Optional[int] = None

    @classmethod
    def from_api(cls, data: Any) -> Optional["Artifact"]:
        """Build an artifact, or None for anything that is not a listing object."""
        if not isinstance(data, dict) or not data.get("path"):
            return None
        size = data.get("size")
        return cls(
            path=str(data["path"]),
            size=size if isinstance(size, int) and not isinstance(size, bool) else None,
        )


@dataclass(frozen=True)
class RunSummary:
    """One execution attempt of a task, as listed on the task itself."""

    run_id: str
    status: str = ""
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    prompt: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "RunSummary":
        return cls(
            run_id=str(data.get("runId") or ""),
            status=str(data.get("status") or ""),
            started_at=_as_str(data.get("startedAt")),
            finished_at=_as_str(data.get("finishedAt")),
            prompt=data.get("prompt") or "",
        )


@dataclass(frozen=True)
class Task:
    """A task as it appears in the collection snapshot."""

    task_id: str
    env_id: str = ""
    status: TaskStatus = TaskStatus.UNKNOWN
    runs: tuple[RunSummary, ...] = ()
    branch_name: str = ""
    prompt: str = ""
    created_at: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def latest_run(self) -> Optional[RunSummary]:
        return self.runs[-1] if self.runs else None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Task":
        runs = tuple(
            RunSummary.from_api(run) for run in _as_list(data.get("runs")) if isinstance(run, dict)
        )
        return cls(
            task_id=str(data.get("taskId") or ""),
            env_id=str(data.get("envId") or ""),
            status=TaskStatus.parse(data.get("status")),
            runs=runs,
            branch_name=data.get("branchName") or "",
            prompt=data.get("prompt") or "",
            created_at=_as_str(data.get("createdAt")),
            raw=dict(data),
        )


@dataclass(frozen=True)
class RunLog:
    """A run together with its log entries and artifacts.

    Immutable once ``finished_at`` is set; while active only ``entries`` grows.
    """

    run_id: str
    status: str = ""
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    prompt: str = ""
    artifacts: tuple[Artifact, ...] = ()
    entries: tuple[LogEntry, ...] = ()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "RunLog":
        entries = []
        for item in _as_list(data.get("entries")):
            try:
                entries.append(LogEntry.from_api(item))
            except ValueError as e:
                logger.debug(f"Skipping log entry in run {data.get('runId')}: {e}")
        artifacts = [Artifact.from_api(item) for item in _as_list(data.get("artifacts"))]
        artifacts = [artifact for artifact in artifacts if artifact is not None]
        return cls(
            run_id=str(data.get("runId") or ""),
            status=str(data.get("status") or ""),
            started_at=_as_str(data.get("startedAt")),
            finished_at=_as_str(data.get("finishedAt")),
            prompt=data.get("prompt") or "",
            artifacts=tuple(artifacts),
            entries=tuple(entries),
        )


@dataclass(frozen=True)
class TaskDetail:
    """Full detail of the selected task: metadata plus per-run logs."""

    task: Task
    run_logs: tuple[RunLog, ...] = ()
    log_tail: str = ""
    git_status: Optional[dict[str, Any]] = field(default=None, compare=False)

    @property
    def task_id(self) -> str:
        return self.task.task_id

    @property
    def status(self) -> TaskStatus:
        return self.task.status

    @property
    def latest_run_id(self) -> str:
        latest = self.task.latest_run
        return latest.run_id if latest else ""

    def find_run_log(self, run_id: str) -> Optional[RunLog]:
        for run_log in self.run_logs:
            if run_log.run_id == run_id:
                return run_log
        return None

    @classmethod
    def from_api(cls, data: Any) -> "TaskDetail":
        if not isinstance(data, dict):
            raise ValueError("task detail must be an object")
        git_status = data.get("gitStatus")
        return cls(
            task=Task.from_api(data),
            run_logs=tuple(
                RunLog.from_api(run) for run in _as_list(data.get("runLogs")) if isinstance(run, dict)
            ),
            log_tail=data.get("logTail") or "",
            git_status=git_status if isinstance(git_status, dict) else None,
        )
