"""Environment, account and collection-snapshot models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .tasks import Task


@dataclass(frozen=True)
class Environment:
    """A source repository tasks can be launched against."""

    env_id: str
    repo_url: str = ""
    default_branch: str = "main"
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Environment":
        return cls(
            env_id=str(data.get("envId") or ""),
            repo_url=data.get("repoUrl") or "",
            default_branch=data.get("defaultBranch") or "main",
            raw=dict(data),
        )


@dataclass(frozen=True)
class AccountState:
    """Credential accounts and which one is active."""

    accounts: tuple[dict[str, Any], ...] = ()
    active_account_id: Optional[str] = None

    @property
    def active_account(self) -> Optional[dict[str, Any]]:
        for account in self.accounts:
            if account.get("id") == self.active_account_id:
                return account
        return None

    @classmethod
    def normalize(cls, value: Any) -> "AccountState":
        """Coerce an accounts payload, falling back to the empty state.

        A non-object payload, or one without an ``accounts`` list, is
        treated as no accounts at all.
        """
        if not isinstance(value, dict):
            return cls()
        accounts = value.get("accounts")
        if not isinstance(accounts, list):
            return cls()
        active = value.get("activeAccountId")
        return cls(
            accounts=tuple(a for a in accounts if isinstance(a, dict)),
            active_account_id=str(active) if active is not None else None,
        )


def coerce_environments(value: Any) -> tuple[Environment, ...]:
    """Build environments from a list payload; anything else is empty."""
    if not isinstance(value, list):
        return ()
    return tuple(Environment.from_api(item) for item in value if isinstance(item, dict))


def coerce_tasks(value: Any) -> tuple[Task, ...]:
    """Build tasks from a list payload; anything else is empty."""
    if not isinstance(value, list):
        return ()
    return tuple(Task.from_api(item) for item in value if isinstance(item, dict))


@dataclass(frozen=True)
class CollectionSnapshot:
    """Full in-memory copy of environments, tasks and accounts.

    Replaced wholesale on init and refresh, never patched field by field.
    """

    environments: tuple[Environment, ...] = ()
    tasks: tuple[Task, ...] = ()
    accounts: AccountState = field(default_factory=AccountState)

    def find_task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.task_id == task_id:
                return task
        return None

    def find_environment(self, env_id: str) -> Optional[Environment]:
        for env in self.environments:
            if env.env_id == env_id:
                return env
        return None

    @classmethod
    def from_payload(cls, payload: Any) -> "CollectionSnapshot":
        """Build a snapshot from an init payload, coercing malformed fields."""
        if not isinstance(payload, dict):
            payload = {}
        return cls(
            environments=coerce_environments(payload.get("envs")),
            tasks=coerce_tasks(payload.get("tasks")),
            accounts=AccountState.normalize(payload.get("accounts")),
        )
