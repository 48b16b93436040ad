"""Logging setup for taskdeck.

Modules use the standard pattern:

    import logging
    logger = logging.getLogger(__name__)

Configuration happens once at the entry point. The CLI logs to stderr; the
TUI logs to a rotating file so log lines never paint over the screen.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# Max log file size: 5MB, keep 2 backups
_MAX_LOG_BYTES = 5 * 1024 * 1024
_BACKUP_COUNT = 2

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_cli_logging(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """Send taskdeck.* log records to stderr at a level picked by the flags."""
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR

    logger = logging.getLogger("taskdeck")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)
    return logger


def setup_tui_logging(log_dir: Optional[Path] = None, verbose: bool = False) -> Path:
    """Route all logging to a rotating file for the lifetime of the TUI.

    The root logger stays at WARNING to keep third-party noise down, while
    taskdeck.* loggers are let through at INFO (DEBUG when verbose).

    Returns:
        Path of the log file.
    """
    if log_dir is None:
        log_dir = Path.home() / ".config" / "taskdeck"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "tui.log"

    root = logging.getLogger()
    if not any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        handler = RotatingFileHandler(log_file, maxBytes=_MAX_LOG_BYTES, backupCount=_BACKUP_COUNT)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
        root.addHandler(handler)
        root.setLevel(logging.WARNING)

    # Stream handlers from CLI setup would write into the terminal
    taskdeck_logger = logging.getLogger("taskdeck")
    for handler in list(taskdeck_logger.handlers):
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            taskdeck_logger.removeHandler(handler)
    taskdeck_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    return log_file
