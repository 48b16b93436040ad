"""Progressive disclosure of large diff files.

Files the server flags ``too_large`` keep their body withheld until the
operator reveals them by path. The gate lives in UI state and is reset
whenever a different task's detail is loaded.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ..models.diffs import DiffFile, TaskDiff
from .parser import DiffRow, DiffStats, parse_diff


class RevealGate:
    """Per-path opt-in flags for withheld diff bodies."""

    def __init__(self, revealed: Iterable[str] = ()):
        self._revealed: frozenset[str] = frozenset(revealed)

    @property
    def revealed(self) -> frozenset[str]:
        return self._revealed

    def reveal(self, path: str) -> bool:
        """Reveal ``path``. Returns False if it was already revealed."""
        if path in self._revealed:
            return False
        self._revealed = self._revealed | {path}
        return True

    def is_revealed(self, path: str) -> bool:
        return path in self._revealed

    def reset(self) -> None:
        self._revealed = frozenset()

    def __len__(self) -> int:
        return len(self._revealed)


@dataclass(frozen=True)
class DiffFileView:
    """A diff file as the presentation layer may show it."""

    file: DiffFile
    revealed: bool = False

    @property
    def path(self) -> str:
        return self.file.path

    @property
    def withheld(self) -> bool:
        return self.file.too_large and not self.revealed

    @property
    def text(self) -> Optional[str]:
        """Raw body, or None while withheld."""
        return None if self.withheld else self.file.text

    @property
    def rows(self) -> Optional[tuple[DiffRow, ...]]:
        """Parsed rows, or None while withheld."""
        if self.withheld:
            return None
        return parse_diff(self.file.text).rows

    @property
    def stats(self) -> Optional[DiffStats]:
        if self.withheld:
            return None
        return parse_diff(self.file.text).stats


def build_file_views(diff: Optional[TaskDiff], gate: RevealGate) -> list[DiffFileView]:
    """Views for every file of an available diff, honouring the gate."""
    if diff is None or not diff.available:
        return []
    return [DiffFileView(file=f, revealed=gate.is_revealed(f.path)) for f in diff.files]
