"""Splitting multi-file ``git diff`` output into per-file chunks."""

from __future__ import annotations

import re
from typing import Optional

from ..config.constants import MAX_DIFF_LINES
from ..models.diffs import DiffFile

_DIFF_HEADER_RE = re.compile(r"^diff --git a/(.+?) b/(.+)$")


def normalize_diff_path(a_path: str, b_path: str) -> str:
    """Pick the path a file diff is shown under.

    Deleted files (``b`` is /dev/null) keep their old path; everything else
    uses the new one.
    """
    if b_path == "dev/null":
        return a_path
    return b_path


def _finish(path: str, text: str, max_lines: int) -> DiffFile:
    trimmed = text.rstrip()
    line_count = len(trimmed.split("\n")) if trimmed else 0
    return DiffFile(path=path, line_count=line_count, text=text, too_large=line_count > max_lines)


def split_unified_diff(diff_text: str, max_lines: int = MAX_DIFF_LINES) -> list[DiffFile]:
    """Split a multi-file diff at each ``diff --git`` header.

    Text before the first header is ignored. A file is flagged ``too_large``
    when its chunk has more than ``max_lines`` lines.
    """
    if not diff_text:
        return []

    files: list[DiffFile] = []
    current_path: Optional[str] = None
    chunk: list[str] = []

    segments = diff_text.split("\n")
    last = len(segments) - 1
    for index, segment in enumerate(segments):
        line = segment if index == last else f"{segment}\n"
        if segment.startswith("diff --git "):
            if current_path is not None:
                files.append(_finish(current_path, "".join(chunk), max_lines))
            match = _DIFF_HEADER_RE.match(segment.rstrip("\r"))
            a_path = match.group(1) if match else "unknown"
            b_path = match.group(2) if match else a_path
            current_path = normalize_diff_path(a_path, b_path)
            chunk = [line]
            continue
        if current_path is not None:
            chunk.append(line)

    if current_path is not None:
        files.append(_finish(current_path, "".join(chunk), max_lines))
    return files
