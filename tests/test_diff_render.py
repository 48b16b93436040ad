"""Tests for rich rendering of diff rows."""

from taskdeck.diff import DiffRow, RevealGate, RowKind, build_file_views
from taskdeck.models import DiffFile, TaskDiff
from taskdeck.ui.diff_render import diff_row_text, render_file_views, stats_text

SMALL = DiffFile(path="a.py", line_count=3, text="@@ -1 +1 @@\n-old\n+new\n")
LARGE = DiffFile(path="big.py", line_count=900, text="@@ -1 +1 @@\n+x\n", too_large=True)


def _plain(lines):
    return [line.plain for line in lines]


class TestDiffRowText:
    def test_addition_has_new_number_only(self):
        text = diff_row_text(DiffRow(RowKind.ADD, "new", new_line=12))

        assert text.plain == "         12 +new"

    def test_context_has_both_numbers(self):
        text = diff_row_text(DiffRow(RowKind.CONTEXT, "same", old_line=3, new_line=4))

        assert text.plain == "    3     4  same"

    def test_hunk_has_no_marker(self):
        assert diff_row_text(DiffRow(RowKind.HUNK, "@@ -1 +1 @@")).plain.endswith(" @@ -1 +1 @@")


class TestRenderFileViews:
    def test_withheld_file_shows_notice(self):
        views = build_file_views(TaskDiff(available=True, files=(SMALL, LARGE)), RevealGate())

        lines = _plain(render_file_views(views))

        assert lines[0] == "a.py  +1 -1"
        assert "big.py  withheld" in lines
        assert lines[-1].startswith("Large diff (900 lines) withheld")
        assert not any(line.endswith("+x") for line in lines)

    def test_revealed_file_shows_rows(self):
        views = build_file_views(TaskDiff(available=True, files=(LARGE,)), RevealGate(["big.py"]))

        lines = _plain(render_file_views(views))

        assert lines[0] == "big.py  +1 -0"
        assert lines[-1].endswith("+x")

    def test_stats_text_for_withheld(self):
        assert stats_text(None).plain == "withheld"
