"""Configuration utilities for taskdeck."""

import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..exceptions import ConfigurationError
from .constants import (
    DEFAULT_API_URL,
    ENV_VAR_DEFINITIONS,
    HTTP_TIMEOUT_SECONDS,
    POLL_INTERVAL_SECONDS,
    RECONNECT_REFRESH_SECONDS,
)


def validate_env_var(name: str, value: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Validate a single environment variable value.

    Args:
        name: The environment variable name.
        value: The current value (or None if not set).

    Returns:
        Tuple of (is_valid, error_message).
    """
    if name not in ENV_VAR_DEFINITIONS:
        return True, None  # Unknown vars are always valid

    if value is None:
        return True, None

    definition = ENV_VAR_DEFINITIONS[name]

    if definition.get("numeric"):
        try:
            number = float(value)
        except ValueError:
            return False, f"Invalid value '{value}' for {name}. Expected a number of seconds"
        if number <= 0:
            return False, f"Invalid value '{value}' for {name}. Must be greater than zero"
        return True, None

    valid_values = definition.get("valid_values")
    if valid_values is None:
        return True, None

    if value.lower() not in [v.lower() for v in valid_values]:
        return False, f"Invalid value '{value}' for {name}. Valid values: {valid_values}"

    return True, None


def validate_all_env_vars() -> List[str]:
    """Validate all taskdeck environment variables.

    Returns:
        List of error messages (empty if all valid).
    """
    errors = []
    for name in ENV_VAR_DEFINITIONS:
        value = os.environ.get(name)
        is_valid, error = validate_env_var(name, value)
        if not is_valid:
            errors.append(error)
    return errors


def get_env_var(name: str, validate: bool = True) -> Optional[str]:
    """Get an environment variable with optional validation.

    Args:
        name: The environment variable name.
        validate: Whether to validate the value against known definitions.

    Returns:
        The environment variable value, or its default if not set.

    Raises:
        ConfigurationError: If validate=True and the value is invalid.
    """
    value = os.environ.get(name)

    if validate and value is not None:
        is_valid, error = validate_env_var(name, value)
        if not is_valid:
            raise ConfigurationError(error, setting=name)

    if value is None and name in ENV_VAR_DEFINITIONS:
        return ENV_VAR_DEFINITIONS[name].get("default")

    return value


def get_env_info() -> Dict[str, Dict]:
    """Describe every taskdeck environment variable and its current state."""
    info = {}
    for name, definition in ENV_VAR_DEFINITIONS.items():
        value = os.environ.get(name)
        is_valid, _ = validate_env_var(name, value)
        info[name] = {
            "description": definition.get("description", ""),
            "value": value,
            "is_set": value is not None,
            "valid": is_valid,
            "default": definition.get("default"),
        }
    return info


@dataclass
class ConsoleSettings:
    """Runtime settings for a console session."""

    api_url: str = DEFAULT_API_URL
    poll_interval_seconds: float = POLL_INTERVAL_SECONDS
    reconnect_refresh_seconds: float = RECONNECT_REFRESH_SECONDS
    http_timeout_seconds: float = HTTP_TIMEOUT_SECONDS
    push_enabled: bool = True

    @classmethod
    def from_env(cls, api_url: Optional[str] = None) -> "ConsoleSettings":
        """Build settings from TASKDECK_* variables; explicit arguments win."""
        return cls(
            api_url=(api_url or get_env_var("TASKDECK_API_URL") or DEFAULT_API_URL).rstrip("/"),
            poll_interval_seconds=float(get_env_var("TASKDECK_POLL_INTERVAL")),
            reconnect_refresh_seconds=float(get_env_var("TASKDECK_RECONNECT_REFRESH")),
            http_timeout_seconds=float(get_env_var("TASKDECK_HTTP_TIMEOUT")),
            push_enabled=get_env_var("TASKDECK_PUSH").lower() == "on",
        )
