"""Configuration for taskdeck."""

from .settings import ConsoleSettings, get_env_var, validate_all_env_vars

__all__ = ["ConsoleSettings", "get_env_var", "validate_all_env_vars"]
