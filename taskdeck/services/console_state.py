"""The console's single in-memory model.

``ConsoleStore`` holds the collection snapshot, the selected task and its
detail/diff, the large-diff reveal gate and the error slot. Every write
replaces a whole value and notifies listeners with the name of the slice
that changed, so views can compare by identity.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Iterable, Optional

from ..diff.reveal import DiffFileView, RevealGate, build_file_views
from ..models import AccountState, CollectionSnapshot, Environment, Task, TaskDetail, TaskDiff

logger = logging.getLogger(__name__)

ENVIRONMENTS = "environments"
TASKS = "tasks"
ACCOUNTS = "accounts"
SELECTION = "selection"
DETAIL = "detail"
REVEAL = "reveal"
ERROR = "error"

StoreListener = Callable[[str], None]


class ConsoleStore:
    """Observable state container for one console session."""

    def __init__(self) -> None:
        self.snapshot = CollectionSnapshot()
        self.selected_task_id: Optional[str] = None
        self.detail: Optional[TaskDetail] = None
        self.diff: Optional[TaskDiff] = None
        self.reveal_gate = RevealGate()
        self.error: Optional[str] = None
        self._listeners: list[StoreListener] = []

    # ── listeners ─────────────────────────────────────────────────────

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, slice_name: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(slice_name)
            except Exception as e:
                logger.error(f"Store listener failed on {slice_name}: {e}")

    # ── collections ───────────────────────────────────────────────────

    @property
    def environments(self) -> tuple[Environment, ...]:
        return self.snapshot.environments

    @property
    def tasks(self) -> tuple[Task, ...]:
        return self.snapshot.tasks

    @property
    def accounts(self) -> AccountState:
        return self.snapshot.accounts

    def replace_environments(self, environments: Iterable[Environment]) -> None:
        self.snapshot = replace(self.snapshot, environments=tuple(environments))
        self._notify(ENVIRONMENTS)

    def replace_tasks(self, tasks: Iterable[Task]) -> None:
        self.snapshot = replace(self.snapshot, tasks=tuple(tasks))
        self._notify(TASKS)

    def replace_accounts(self, accounts: AccountState) -> None:
        self.snapshot = replace(self.snapshot, accounts=accounts)
        self._notify(ACCOUNTS)

    def replace_snapshot(self, snapshot: CollectionSnapshot) -> None:
        self.snapshot = snapshot
        self._notify(ENVIRONMENTS)
        self._notify(TASKS)
        self._notify(ACCOUNTS)

    # ── selection & detail ────────────────────────────────────────────

    @property
    def selected_task(self) -> Optional[Task]:
        if not self.selected_task_id:
            return None
        return self.snapshot.find_task(self.selected_task_id)

    def select_task(self, task_id: Optional[str]) -> None:
        """Change the selection; detail of a previous task is dropped."""
        task_id = task_id or None
        if task_id == self.selected_task_id:
            return
        self.selected_task_id = task_id
        self.detail = None
        self.diff = None
        self.reveal_gate.reset()
        self._notify(SELECTION)
        self._notify(DETAIL)

    def clear_selection(self) -> None:
        self.select_task(None)

    def set_detail(self, detail: TaskDetail, diff: Optional[TaskDiff], *, reset_reveals: bool = False) -> None:
        """Replace the selected task's detail and diff together."""
        self.detail = detail
        self.diff = diff
        if reset_reveals:
            self.reveal_gate.reset()
        self._notify(DETAIL)

    def update_detail(self, updater: Callable[[TaskDetail], TaskDetail]) -> bool:
        """Apply ``updater`` to the current detail.

        Returns True when it produced a different object (and listeners were
        told), False when there was no detail or nothing changed.
        """
        current = self.detail
        if current is None:
            return False
        updated = updater(current)
        if updated is current:
            return False
        self.detail = updated
        self._notify(DETAIL)
        return True

    # ── diff reveal gate ──────────────────────────────────────────────

    def reveal_diff(self, path: str) -> bool:
        """Reveal one file of the current diff; paths not in it are ignored."""
        if self.diff is None or self.diff.find_file(path) is None:
            return False
        if self.reveal_gate.reveal(path):
            self._notify(REVEAL)
        return True

    def diff_views(self) -> list[DiffFileView]:
        return build_file_views(self.diff, self.reveal_gate)

    # ── errors ────────────────────────────────────────────────────────

    def report_error(self, message: Optional[str]) -> None:
        self.error = message or None
        self._notify(ERROR)

    def clear_error(self) -> None:
        if self.error is not None:
            self.report_error(None)
