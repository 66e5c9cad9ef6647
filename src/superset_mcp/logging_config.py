"""Logging setup: console (stderr) plus a rotating file under the log directory."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d - %(message)s"
LOG_FILE_NAME = "superset_mcp.log"

# Libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: Optional[str] = None, log_dir: Optional[str] = None) -> None:
    """
    Configure the root logger.

    Console output goes to stderr because stdout carries the MCP stdio
    transport. A rotating file handler is added when the log directory can
    be created.

    Args:
        level: Log level name (defaults to settings.log_level)
        log_dir: Directory for the log file (defaults to settings.log_dir)
    """
    if level is None or log_dir is None:
        from .config import settings

        level = level or settings.log_level
        log_dir = log_dir or settings.log_dir

    root = logging.getLogger()
    root.setLevel(level.upper())

    # Replace handlers from a previous call
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    try:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path / LOG_FILE_NAME,
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
    except OSError as e:
        root.warning(f"File logging disabled, cannot use '{log_dir}': {e}")

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
