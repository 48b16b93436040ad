"""Rich renderables for parsed diff rows, shared by the TUI and the CLI."""

from __future__ import annotations

from typing import Iterable, Iterator, Optional

from rich.text import Text

from ..diff import DiffFileView, DiffRow, DiffStats, RowKind

ROW_STYLES = {
    RowKind.ADD: "green",
    RowKind.DEL: "red",
    RowKind.HUNK: "cyan",
    RowKind.META: "yellow dim",
    RowKind.CONTEXT: "",
}
ROW_MARKERS = {
    RowKind.ADD: "+",
    RowKind.DEL: "-",
    RowKind.CONTEXT: " ",
}


def _number(value: Optional[int]) -> str:
    return f"{value:>5}" if value is not None else "     "


def diff_row_text(row: DiffRow) -> Text:
    """One row with its old/new gutter, coloured by kind."""
    text = Text()
    text.append(f"{_number(row.old_line)} {_number(row.new_line)} ", style="dim")
    marker = ROW_MARKERS.get(row.kind, "")
    text.append(f"{marker}{row.text}", style=ROW_STYLES.get(row.kind, ""))
    return text


def stats_text(stats: Optional[DiffStats]) -> Text:
    if stats is None:
        return Text("withheld", style="yellow")
    text = Text()
    text.append(f"+{stats.additions}", style="green")
    text.append(" ")
    text.append(f"-{stats.deletions}", style="red")
    return text


def file_header_text(view: DiffFileView) -> Text:
    text = Text(view.path, style="yellow bold")
    text.append("  ")
    text.append_text(stats_text(view.stats))
    return text


def withheld_text(view: DiffFileView) -> Text:
    return Text(
        f"Large diff ({view.file.line_count} lines) withheld. Reveal to render it.",
        style="yellow italic",
    )


def render_file_view(view: DiffFileView) -> Iterator[Text]:
    """Header followed by rows, or by a notice while the file is withheld."""
    yield file_header_text(view)
    if view.rows is None:
        yield withheld_text(view)
        return
    for row in view.rows:
        yield diff_row_text(row)


def render_file_views(views: Iterable[DiffFileView]) -> Iterator[Text]:
    for index, view in enumerate(views):
        if index:
            yield Text("")
        yield from render_file_view(view)
