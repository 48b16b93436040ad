"""TypedDict definitions for payloads exchanged with the orchestration service."""

from __future__ import annotations

from typing import Any, TypedDict

# ── Log stream ────────────────────────────────────────────────────────


class LogEntryPayload(TypedDict, total=False):
    """One line of a run log as the service serialises it."""

    id: str
    type: str
    raw: str
    parsed: Any


class LogStreamMessage(TypedDict):
    """Body of a per-run log stream message."""

    runId: str
    entry: LogEntryPayload


class ArtifactPayload(TypedDict, total=False):
    """A file listed under a run's artifacts."""

    path: str
    size: int


# ── Diffs ─────────────────────────────────────────────────────────────


class DiffFilePayload(TypedDict, total=False):
    """One file of a task diff."""

    path: str
    diff: str
    lineCount: int
    tooLarge: bool


class TaskDiffPayload(TypedDict, total=False):
    """Response of GET /api/tasks/{id}/diff."""

    available: bool
    baseSha: str
    files: list[DiffFilePayload]
    reason: str


# ── State stream ──────────────────────────────────────────────────────


class AccountStatePayload(TypedDict, total=False):
    """Response of GET /api/accounts."""

    accounts: list[dict[str, Any]]
    activeAccountId: str | None


class StateSnapshotPayload(TypedDict, total=False):
    """Body of the state stream's init event."""

    envs: list[dict[str, Any]]
    tasks: list[dict[str, Any]]
    accounts: AccountStatePayload
