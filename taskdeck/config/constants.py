"""
Centralized constants for taskdeck.

Intervals are in seconds unless noted. Wire-level names (endpoints, event
names, status strings) match what the orchestration service emits.
"""

from pathlib import Path

TASKDECK_CONFIG_DIR = Path.home() / ".config" / "taskdeck"

# =============================================================================
# SERVICE ENDPOINTS
# =============================================================================

DEFAULT_API_URL = "http://localhost:8080"

ENVS_PATH = "/api/envs"
TASKS_PATH = "/api/tasks"
ACCOUNTS_PATH = "/api/accounts"
STATE_STREAM_PATH = "/api/events/stream"

# =============================================================================
# PUSH CHANNEL EVENTS
# =============================================================================

INIT_EVENT = "init"
TASKS_CHANGED_EVENT = "tasks_changed"
ENVS_CHANGED_EVENT = "envs_changed"
ACCOUNTS_CHANGED_EVENT = "accounts_changed"
ERROR_EVENT = "error"
MESSAGE_EVENT = "message"

INVALIDATION_EVENTS = (TASKS_CHANGED_EVENT, ENVS_CHANGED_EVENT, ACCOUNTS_CHANGED_EVENT)

# =============================================================================
# REFRESH CADENCE
# =============================================================================

POLL_INTERVAL_SECONDS = 8.0  # polling fallback, independent of push health
RECONNECT_REFRESH_SECONDS = 60.0  # min gap between error-triggered refreshes
SSE_RETRY_SECONDS = 3.0  # reconnect delay unless the server sends retry:
HTTP_TIMEOUT_SECONDS = 30.0

# =============================================================================
# DIFFS
# =============================================================================

MAX_DIFF_LINES = 400  # files above this are flagged too_large

# =============================================================================
# ENVIRONMENT VARIABLES
# =============================================================================

ENV_VAR_DEFINITIONS = {
    "TASKDECK_API_URL": {
        "description": "Base URL of the orchestration service",
        "default": DEFAULT_API_URL,
        "valid_values": None,
    },
    "TASKDECK_POLL_INTERVAL": {
        "description": "Seconds between polling refreshes",
        "default": str(int(POLL_INTERVAL_SECONDS)),
        "valid_values": None,
        "numeric": True,
    },
    "TASKDECK_RECONNECT_REFRESH": {
        "description": "Minimum seconds between refreshes caused by push-channel errors",
        "default": str(int(RECONNECT_REFRESH_SECONDS)),
        "valid_values": None,
        "numeric": True,
    },
    "TASKDECK_HTTP_TIMEOUT": {
        "description": "HTTP request timeout in seconds",
        "default": str(int(HTTP_TIMEOUT_SECONDS)),
        "valid_values": None,
        "numeric": True,
    },
    "TASKDECK_PUSH": {
        "description": "Use the push channel (off falls back to interval refresh)",
        "default": "on",
        "valid_values": ["on", "off"],
    },
}
