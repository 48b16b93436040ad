"""Data models for the console's in-memory state."""

from .snapshot import AccountState, CollectionSnapshot, Environment
from .diffs import DiffFile, TaskDiff
from .tasks import ACTIVE_STATUSES, Artifact, LogEntry, RunLog, RunSummary, Task, TaskDetail, TaskStatus

__all__ = [
    "ACTIVE_STATUSES",
    "AccountState",
    "Artifact",
    "CollectionSnapshot",
    "DiffFile",
    "Environment",
    "LogEntry",
    "RunLog",
    "RunSummary",
    "Task",
    "TaskDetail",
    "TaskDiff",
    "TaskStatus",
]
