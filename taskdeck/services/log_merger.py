"""Idempotent merging of streamed log entries into a run's entry list."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Sequence

from ..models import LogEntry, RunLog, TaskDetail


def merge_log_entry(entries: Sequence[LogEntry], entry: LogEntry) -> tuple[LogEntry, ...]:
    """Append ``entry`` unless an entry with the same id is already present.

    A duplicate returns ``entries`` itself (as a tuple, so a tuple input is
    returned unchanged by identity); otherwise a new tuple with the entry at
    the end. Existing entries are never reordered or dropped.
    """
    existing = entries if isinstance(entries, tuple) else tuple(entries)
    if any(current.id == entry.id for current in existing):
        return existing
    return existing + (entry,)


def merge_log_entries(entries: Sequence[LogEntry], incoming: Iterable[LogEntry]) -> tuple[LogEntry, ...]:
    merged = entries if isinstance(entries, tuple) else tuple(entries)
    for entry in incoming:
        merged = merge_log_entry(merged, entry)
    return merged


def apply_log_entry(detail: TaskDetail, run_id: str, entry: LogEntry) -> TaskDetail:
    """Return a detail with ``entry`` merged into run ``run_id``.

    The same detail object comes back when the run is unknown or the entry
    is a duplicate; otherwise a new detail, run tuple and run object are
    built so identity comparisons notice the change.
    """
    for index, run_log in enumerate(detail.run_logs):
        if run_log.run_id != run_id:
            continue
        merged = merge_log_entry(run_log.entries, entry)
        if merged is run_log.entries:
            return detail
        updated: RunLog = replace(run_log, entries=merged)
        run_logs = detail.run_logs[:index] + (updated,) + detail.run_logs[index + 1:]
        return replace(detail, run_logs=run_logs)
    return detail
