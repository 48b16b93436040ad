"""Task diff models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

NOT_READY_REASON = "Diff is not available yet."


@dataclass(frozen=True)
class DiffFile:
    """Unified diff text for one file, with the server's size verdict."""

    path: str
    line_count: int = 0
    text: str = ""
    too_large: bool = False

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "DiffFile":
        text = data.get("diff") or ""
        line_count = data.get("lineCount")
        if not isinstance(line_count, int):
            stripped = text.rstrip()
            line_count = len(stripped.split("\n")) if stripped else 0
        return cls(
            path=str(data.get("path") or "unknown"),
            line_count=line_count,
            text=text,
            too_large=data.get("tooLarge") is True,
        )


@dataclass(frozen=True)
class TaskDiff:
    """Diff of a task's worktree against its base commit.

    ``available`` is False both when the server could not compute a diff
    (``reason`` explains why) and when the diff endpoint answered 404,
    which is represented by :meth:`not_ready`.
    """

    available: bool
    base_sha: Optional[str] = None
    files: tuple[DiffFile, ...] = ()
    reason: Optional[str] = None

    @property
    def is_not_ready(self) -> bool:
        return not self.available and self.reason == NOT_READY_REASON

    def find_file(self, path: str) -> Optional[DiffFile]:
        for diff_file in self.files:
            if diff_file.path == path:
                return diff_file
        return None

    @classmethod
    def not_ready(cls) -> "TaskDiff":
        """Typed absence for a diff the server cannot compute yet."""
        return cls(available=False, reason=NOT_READY_REASON)

    @classmethod
    def from_api(cls, data: Any) -> "TaskDiff":
        if not isinstance(data, dict):
            return cls(available=False, reason="Malformed diff response.")
        if not data.get("available"):
            return cls(available=False, reason=data.get("reason") or "unknown error")
        files = data.get("files")
        return cls(
            available=True,
            base_sha=data.get("baseSha"),
            files=tuple(
                DiffFile.from_api(f) for f in (files if isinstance(files, list) else []) if isinstance(f, dict)
            ),
        )
