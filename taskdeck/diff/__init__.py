"""Unified diff parsing and display helpers."""

from .files import split_unified_diff
from .parser import DiffRow, DiffStats, ParsedDiff, RowKind, build_diff_rows, get_diff_stats, parse_diff
from .reveal import DiffFileView, RevealGate, build_file_views

__all__ = [
    "DiffFileView",
    "DiffRow",
    "DiffStats",
    "ParsedDiff",
    "RevealGate",
    "RowKind",
    "build_diff_rows",
    "build_file_views",
    "get_diff_stats",
    "parse_diff",
    "split_unified_diff",
]
