"""Custom exception hierarchy for taskdeck.

Exceptions are grouped by the failure taxonomy the console reacts to:

    TaskdeckError (base)
    ├── ApiError - calls against the orchestration service
    │   ├── ApiConnectionError (retryable) - transport failures, timeouts
    │   ├── ApiNotFoundError - HTTP 404, treated as absence by callers
    │   └── ApiResponseError - any other non-2xx response
    ├── StreamError - push subscription failures
    ├── WorktreeError - reading a local git worktree
    └── ConfigurationError - settings/environment issues

Usage:
    from taskdeck.exceptions import ApiNotFoundError

    try:
        detail = await client.get_task(task_id)
    except ApiNotFoundError:
        store.clear_selection()
"""

from typing import Any, Optional


class TaskdeckError(Exception):
    """Base exception for all taskdeck errors.

    Attributes:
        message: Human-readable error description
        context: Additional context about the error (e.g., IDs, paths)
        retryable: Whether this error might succeed on retry
    """

    def __init__(
        self,
        message: str,
        *,
        retryable: bool = False,
        **context: Any,
    ) -> None:
        self.message = message
        self.context = context
        self.retryable = retryable
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with context."""
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


# =============================================================================
# API Errors
# =============================================================================


class ApiError(TaskdeckError):
    """Base exception for calls against the orchestration service."""

    pass


class ApiConnectionError(ApiError):
    """Failed to reach the service - typically retryable."""

    def __init__(
        self,
        message: str = "API connection failed",
        *,
        url: Optional[str] = None,
        **context: Any,
    ) -> None:
        if url:
            context["url"] = url
        super().__init__(message, retryable=True, **context)


class ApiResponseError(ApiError):
    """The service answered with a non-success status."""

    def __init__(
        self,
        message: str = "API request failed",
        *,
        status: int = 0,
        url: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.status = status
        context["status"] = status
        if url:
            context["url"] = url
        super().__init__(message, **context)


class ApiNotFoundError(ApiResponseError):
    """The referenced resource does not exist (HTTP 404)."""

    def __init__(
        self,
        message: str = "Not found",
        *,
        url: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(message, status=404, url=url, **context)


# =============================================================================
# Stream Errors
# =============================================================================


class StreamError(TaskdeckError):
    """A push subscription could not be established or was interrupted."""

    def __init__(
        self,
        message: str = "Event stream failed",
        *,
        url: Optional[str] = None,
        status: Optional[int] = None,
        **context: Any,
    ) -> None:
        if url:
            context["url"] = url
        if status is not None:
            context["status"] = status
        super().__init__(message, retryable=True, **context)


# =============================================================================
# Worktree Errors
# =============================================================================


class WorktreeError(TaskdeckError):
    """A local git worktree could not be opened or diffed."""

    def __init__(
        self,
        message: str = "Git worktree error",
        *,
        path: Optional[str] = None,
        **context: Any,
    ) -> None:
        if path:
            context["path"] = path
        super().__init__(message, **context)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(TaskdeckError):
    """Configuration or settings error."""

    def __init__(
        self,
        message: str = "Configuration error",
        *,
        setting: Optional[str] = None,
        **context: Any,
    ) -> None:
        if setting:
            context["setting"] = setting
        super().__init__(message, **context)
