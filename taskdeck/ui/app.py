"""The operator console TUI.

The app never fetches or mutates data itself: it renders whatever the
session's ``ConsoleStore`` holds, re-rendering the affected pane when a
store listener reports a changed slice, and forwards user actions to the
``ConsoleSession``.
"""

import logging
from typing import Callable, Optional

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import DataTable, Footer, RichLog, Static

from ..diff import DiffFileView
from ..models import TaskDetail, TaskStatus
from ..services.console_session import ConsoleSession
from ..services.console_state import DETAIL, ENVIRONMENTS, REVEAL, SELECTION, TASKS
from ..utils.log_format import (
    collect_agent_messages,
    format_artifact,
    format_elapsed,
    format_log_summary,
    get_elapsed_seconds,
)
from .diff_render import render_file_view, stats_text

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    TaskStatus.RUNNING: "green",
    TaskStatus.STOPPING: "yellow",
    TaskStatus.COMPLETED: "blue",
    TaskStatus.FAILED: "red",
    TaskStatus.STOPPED: "dim",
    TaskStatus.UNKNOWN: "dim",
}


class TaskDeckApp(App):
    """Task list on the left, selected task's logs and diff on the right."""

    TITLE = "taskdeck"

    CSS = """
    #task-table {
        width: 40%;
        height: 100%;
    }

    #detail-pane {
        width: 60%;
        padding: 0 1;
    }

    #detail-header {
        height: 3;
        background: $surface-darken-1;
        padding: 0 1;
    }

    #log-view {
        height: 1fr;
        border-bottom: solid $primary-darken-2;
    }

    #diff-files {
        height: 8;
    }

    #diff-view {
        height: 2fr;
    }

    #status-bar {
        height: 1;
        background: $primary;
        color: $text;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh_now", "Refresh"),
        Binding("v", "reveal_diff", "Reveal diff"),
        Binding("escape", "clear_selection", "Deselect", show=False),
    ]

    def __init__(self, session: ConsoleSession):
        super().__init__()
        self.session = session
        self.store = session.store
        self.diff_path: Optional[str] = None
        self.status_text = ""
        self._unsubscribe: Optional[Callable[[], None]] = None

    def compose(self) -> ComposeResult:
        with Horizontal():
            yield DataTable(id="task-table", cursor_type="row")
            with Vertical(id="detail-pane"):
                yield Static("No task selected", id="detail-header")
                yield RichLog(id="log-view", wrap=True, markup=False, auto_scroll=True)
                yield DataTable(id="diff-files", cursor_type="row")
                yield RichLog(id="diff-view", wrap=False, markup=False, auto_scroll=False)
        yield Static("", id="status-bar")
        yield Footer()

    async def on_mount(self) -> None:
        tasks = self.query_one("#task-table", DataTable)
        tasks.add_columns("Status", "Task", "Branch", "Elapsed")
        files = self.query_one("#diff-files", DataTable)
        files.add_columns("File", "Changes", "Lines")

        # Subscribe after the session so its listeners run before the view's.
        await self.session.start()
        self._unsubscribe = self.store.subscribe(self._on_store_change)
        self._render_all()

    async def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.session.aclose()

    # ── store → view ──────────────────────────────────────────────────

    def _on_store_change(self, slice_name: str) -> None:
        if slice_name == TASKS:
            self._render_tasks()
        elif slice_name in (SELECTION, DETAIL):
            self._render_detail()
            self._render_diff_files()
        elif slice_name == REVEAL:
            self._render_diff_files()
        elif slice_name == ENVIRONMENTS and self.store.detail is not None:
            self._render_detail()
        # errors and accounts only show up in the status bar
        self._render_status()

    def _render_all(self) -> None:
        self._render_tasks()
        self._render_detail()
        self._render_diff_files()
        self._render_status()

    def _render_tasks(self) -> None:
        table = self.query_one("#task-table", DataTable)
        table.clear()
        for task in self.store.tasks:
            latest = task.latest_run
            elapsed = None
            if latest is not None:
                elapsed = get_elapsed_seconds(latest.started_at, latest.finished_at)
            table.add_row(
                Text(task.status.value, style=STATUS_STYLES.get(task.status, "")),
                task.task_id,
                task.branch_name or "-",
                format_elapsed(elapsed),
                key=task.task_id,
            )
        selected = self.store.selected_task_id
        if selected and selected in table.rows:
            table.move_cursor(row=table.get_row_index(selected))

    def _render_detail(self) -> None:
        header = self.query_one("#detail-header", Static)
        log_view = self.query_one("#log-view", RichLog)
        log_view.clear()

        detail = self.store.detail
        if detail is None:
            header.update("Loading..." if self.store.selected_task_id else "No task selected")
            return

        header.update(self._detail_header(detail))
        for run_log in detail.run_logs:
            log_view.write(Text(f"Run {run_log.run_id} · {run_log.status or 'unknown'}", style="bold"))
            for artifact in run_log.artifacts:
                log_view.write(Text(f"  artifact {format_artifact(artifact)}", style="magenta"))
            for entry in run_log.entries:
                log_view.write(Text(f"  {format_log_summary(entry)}", style="dim"))
            for message in collect_agent_messages(run_log.entries):
                log_view.write(Text(message))
        if not detail.run_logs and detail.log_tail:
            log_view.write(Text(detail.log_tail))

    def _detail_header(self, detail: TaskDetail) -> Text:
        task = detail.task
        text = Text(task.task_id, style="bold")
        text.append("  ")
        text.append(task.status.value, style=STATUS_STYLES.get(task.status, ""))
        if task.branch_name:
            text.append(f"  {task.branch_name}", style="dim")
        env = self.store.snapshot.find_environment(task.env_id)
        if env is not None and env.repo_url:
            text.append(f"  {env.repo_url}", style="cyan")
        latest = task.latest_run
        if latest is not None:
            elapsed = get_elapsed_seconds(latest.started_at, latest.finished_at)
            text.append(f"  {format_elapsed(elapsed)}")
            if latest.prompt:
                text.append(f"\n{latest.prompt[:200]}", style="italic")
        return text

    def _render_diff_files(self) -> None:
        table = self.query_one("#diff-files", DataTable)
        table.clear()
        views = self.session.diff_views()
        for view in views:
            table.add_row(view.path, stats_text(view.stats), str(view.file.line_count), key=view.path)

        paths = [view.path for view in views]
        if self.diff_path not in paths:
            self.diff_path = paths[0] if paths else None
        if self.diff_path is not None:
            table.move_cursor(row=table.get_row_index(self.diff_path))
        self._render_diff(views)

    def _render_diff(self, views: Optional[list] = None) -> None:
        diff_view = self.query_one("#diff-view", RichLog)
        diff_view.clear()

        diff = self.store.diff
        if diff is not None and not diff.available:
            diff_view.write(Text(diff.reason or "Diff unavailable.", style="yellow"))
            return

        view = self._current_view(views)
        if view is None:
            return
        for line in render_file_view(view):
            diff_view.write(line)

    def _current_view(self, views: Optional[list] = None) -> Optional[DiffFileView]:
        for view in views if views is not None else self.session.diff_views():
            if view.path == self.diff_path:
                return view
        return None

    def _render_status(self) -> None:
        status = self.query_one("#status-bar", Static)
        if self.store.error:
            self.status_text = self.store.error
            status.update(Text(self.status_text, style="bold red"))
            return
        sync = self.session.synchronizer
        mode = "push" if not sync.degraded else "interval refresh"
        streaming = " | streaming logs" if self.session.log_stream.key else ""
        account = self.store.accounts.active_account
        account_label = ""
        if account is not None:
            account_label = f" | account {account.get('label') or account.get('id')}"
        self.status_text = f"{len(self.store.tasks)} tasks | {mode}{streaming}{account_label}"
        status.update(self.status_text)

    # ── view → session ────────────────────────────────────────────────

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        if event.data_table.id != "task-table":
            return
        task_id = event.row_key.value
        if task_id and task_id != self.store.selected_task_id:
            self.run_worker(self.session.select_task(task_id), exclusive=True, group="select")

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.data_table.id != "diff-files":
            return
        path = event.row_key.value
        if path and path != self.diff_path:
            self.diff_path = path
            self._render_diff()

    def action_refresh_now(self) -> None:
        self.run_worker(self.session.refresh_now(), exclusive=True, group="refresh")

    def action_reveal_diff(self) -> None:
        view = self._current_view()
        if view is not None and view.withheld:
            self.session.reveal_diff(view.path)

    def action_clear_selection(self) -> None:
        self.run_worker(self.session.select_task(None), exclusive=True, group="select")
