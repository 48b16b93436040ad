"""Display helpers for run log entries and run timing."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Union

from ..models import Artifact, LogEntry

ITEM_EVENTS = ("item.started", "item.completed")


def _item(entry: LogEntry) -> dict[str, Any]:
    parsed = entry.parsed if isinstance(entry.parsed, dict) else {}
    item = parsed.get("item")
    return item if isinstance(item, dict) else {}


def format_log_entry(entry: Optional[LogEntry]) -> str:
    """Pretty JSON of the parsed payload, or the raw line when there is none."""
    if entry is None:
        return ""
    if entry.parsed:
        try:
            return json.dumps(entry.parsed, indent=2, ensure_ascii=False)
        except (TypeError, ValueError):
            return entry.raw or ""
    return entry.raw or ""


def format_log_summary(entry: Optional[LogEntry]) -> str:
    """One-line label: the entry type, plus the item type for item events."""
    if entry is None:
        return ""
    summary = entry.type or ""
    item_type = _item(entry).get("type")
    if entry.type in ITEM_EVENTS and item_type:
        return f"{summary} • {item_type}"
    return summary


def collect_agent_messages(entries: Iterable[LogEntry]) -> list[str]:
    """Texts of completed agent messages, in log order."""
    messages = []
    for entry in entries:
        parsed = entry.parsed if isinstance(entry.parsed, dict) else {}
        if parsed.get("type") != "item.completed":
            continue
        item = _item(entry)
        if item.get("type") == "agent_message" and item.get("text"):
            messages.append(str(item["text"]))
    return messages


def parse_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO timestamp (``Z`` suffix allowed); naive values are UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        normalized = value.strip()
        if normalized.endswith("Z"):
            normalized = normalized[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(normalized)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def get_elapsed_seconds(
    started_at: Union[str, datetime, None],
    finished_at: Union[str, datetime, None] = None,
    now: Optional[datetime] = None,
) -> Optional[float]:
    """Seconds a run has taken, measured up to ``now`` while unfinished.

    Returns None when the start is missing or unparseable, or when a given
    finish time cannot be parsed. Never negative.
    """
    start = parse_datetime(started_at)
    if start is None:
        return None
    if finished_at:
        end = parse_datetime(finished_at)
    else:
        end = parse_datetime(now) if now is not None else datetime.now(timezone.utc)
    if end is None:
        return None
    return max(0.0, (end - start).total_seconds())


def format_elapsed(seconds: Optional[float]) -> str:
    """Compact duration such as ``45s``, ``3m 05s`` or ``2h 10m``."""
    if seconds is None:
        return "-"
    total = int(seconds)
    if total < 60:
        return f"{total}s"
    minutes, secs = divmod(total, 60)
    if minutes < 60:
        return f"{minutes}m {secs:02d}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes:02d}m"


def format_file_size(size_bytes: Optional[int]) -> str:
    """Human-readable size such as ``512 B`` or ``1.5 KB``; ``-`` when unknown."""
    if size_bytes is None or size_bytes < 0:
        return "-"
    units = ["B", "KB", "MB", "GB"]
    size = float(size_bytes)
    unit_index = 0
    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1
    if unit_index == 0 or size == int(size):
        return f"{int(size)} {units[unit_index]}"
    return f"{size:.1f} {units[unit_index]}"


def format_artifact(artifact: Artifact) -> str:
    """One listing line for a run artifact."""
    return f"{artifact.path} ({format_file_size(artifact.size)})"
