"""
Logging setup for the Project Eye service.

``PROJECT_EYE_LOG_DIR`` moves the log file and ``PROJECT_EYE_LOG_LEVEL``
changes the console level (the file always records DEBUG).
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger as _logger

_LOG_INITIALISED = False
LOG_FILE_NAME = "service.log"


def default_log_path() -> Path:
    base = os.environ.get("PROJECT_EYE_LOG_DIR") or str(Path.home() / "AppData" / "Local" / "Project Eye")
    return Path(base) / LOG_FILE_NAME


def configure(log_path: Optional[Path] = None) -> None:
    """Install the console and rotating file sinks once per process."""
    global _LOG_INITIALISED
    if _LOG_INITIALISED:
        return
    target = log_path or default_log_path()
    target.parent.mkdir(parents=True, exist_ok=True)

    _logger.remove()
    # pythonw.exe runs without a console.
    if sys.stderr is not None:
        _logger.add(sys.stderr, level=os.environ.get("PROJECT_EYE_LOG_LEVEL", "INFO").upper())
    _logger.add(
        target,
        level="DEBUG",
        rotation="10 MB",
        retention=5,
        encoding="utf-8",
        enqueue=True,
        diagnose=False,
    )
    _LOG_INITIALISED = True


def get_logger():
    configure()
    return _logger
