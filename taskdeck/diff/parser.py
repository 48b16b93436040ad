"""Unified diff parsing into line-numbered display rows.

The parser is a small state machine: a ``_ScanState`` tracks whether a hunk
header has been seen and the running old/new line counters, and each line
is classified by the first rule that claims it. Rows are rebuilt from
scratch for every diff text; nothing is updated incrementally.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Iterator, Optional

STRUCTURAL_PREFIXES = ("diff --git", "index ", "--- ", "+++ ")
NO_NEWLINE_MARKER = "\\ No newline"
HUNK_HEADER_RE = re.compile(r"@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


class RowKind(str, Enum):
    """Classification of a rendered diff line."""

    HUNK = "hunk"
    META = "meta"
    ADD = "add"
    DEL = "del"
    CONTEXT = "context"


@dataclass(frozen=True)
class DiffRow:
    """One rendered line of a diff."""

    kind: RowKind
    text: str
    old_line: Optional[int] = None
    new_line: Optional[int] = None


@dataclass(frozen=True)
class DiffStats:
    additions: int = 0
    deletions: int = 0

    @property
    def changed(self) -> int:
        return self.additions + self.deletions


@dataclass(frozen=True)
class ParsedDiff:
    rows: tuple[DiffRow, ...]
    stats: DiffStats


@dataclass
class _ScanState:
    old_line: Optional[int] = None
    new_line: Optional[int] = None
    in_hunk: bool = False

    def take_old(self) -> Optional[int]:
        current = self.old_line
        if current is not None:
            self.old_line = current + 1
        return current

    def take_new(self) -> Optional[int]:
        current = self.new_line
        if current is not None:
            self.new_line = current + 1
        return current


def iter_diff_lines(diff_text: str) -> Iterator[str]:
    """Yield the content lines of a diff.

    The empty segment after a final line terminator is not content.
    """
    if not diff_text:
        return
    lines = diff_text.split("\n")
    last = len(lines) - 1
    for index, line in enumerate(lines):
        if index == last and not line:
            continue
        yield line


def is_addition(line: str) -> bool:
    return line.startswith("+") and not line.startswith("+++")


def is_deletion(line: str) -> bool:
    return line.startswith("-") and not line.startswith("---")


def is_structural(line: str) -> bool:
    return line.startswith(STRUCTURAL_PREFIXES)


def _classify(line: str, state: _ScanState) -> Optional[DiffRow]:
    """Classify one line, advancing ``state``. Returns None for dropped lines."""
    if line.startswith("@@"):
        match = HUNK_HEADER_RE.search(line)
        if match:
            state.old_line = int(match.group(1))
            state.new_line = int(match.group(3))
            state.in_hunk = True
        return DiffRow(RowKind.HUNK, line)

    if line.startswith(NO_NEWLINE_MARKER):
        return DiffRow(RowKind.META, line)

    if is_structural(line):
        return None

    if is_addition(line):
        return DiffRow(RowKind.ADD, line[1:], new_line=state.take_new())

    if is_deletion(line):
        return DiffRow(RowKind.DEL, line[1:], old_line=state.take_old())

    if state.in_hunk:
        content = line[1:] if line.startswith(" ") else line
        return DiffRow(
            RowKind.CONTEXT,
            content,
            old_line=state.take_old(),
            new_line=state.take_new(),
        )

    # Stray text before any hunk
    return DiffRow(RowKind.META, line)


def build_diff_rows(diff_text: str) -> list[DiffRow]:
    """Turn unified diff text for one file into ordered display rows."""
    state = _ScanState()
    rows = []
    for line in iter_diff_lines(diff_text):
        row = _classify(line, state)
        if row is not None:
            rows.append(row)
    return rows


def get_diff_stats(diff_text: str) -> DiffStats:
    """Count added and removed lines, ignoring ``+++``/``---`` file headers."""
    additions = 0
    deletions = 0
    for line in iter_diff_lines(diff_text):
        if is_addition(line):
            additions += 1
        elif is_deletion(line):
            deletions += 1
    return DiffStats(additions=additions, deletions=deletions)


@lru_cache(maxsize=256)
def parse_diff(diff_text: str) -> ParsedDiff:
    """Rows and stats for a diff text; cached since rendering re-asks often."""
    return ParsedDiff(rows=tuple(build_diff_rows(diff_text)), stats=get_diff_stats(diff_text))
