"""Logging setup for engagement-rank.

Every module logs through the shared ``engagement-rank`` logger exported
here.  It writes INFO and above to stderr from import time.  The CLI
calls :func:`configure_logging` once per invocation with the
``--log-level`` and ``--log-dir`` options, so a ranking run can be
replayed from its log file afterwards.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path

from engagement_rank.errors import ActionableError

LOGGER_NAME = "engagement-rank"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(LOGGER_NAME)
logger.setLevel(logging.INFO)

_stderr_handler = logging.StreamHandler(sys.stderr)
_stderr_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT))
logger.addHandler(_stderr_handler)


def resolve_level(level: str | int) -> int:
    """Turn a level name such as ``"debug"`` into its ``logging`` constant."""
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name not in LOG_LEVELS:
        raise ActionableError.validation(
            field_name="log_level",
            reason=f"'{level}' is not one of {', '.join(LOG_LEVELS)}",
        )
    return logging.getLevelNamesMapping()[name]


def configure_logging(
    level: str | int = "INFO",
    log_dir: str | None = None,
) -> logging.FileHandler | None:
    """Apply *level* to the run and optionally mirror it to a file.

    When *log_dir* is given a file ``engagement-rank_<timestamp>.log`` is
    created there (directories included) and its handler is returned so
    tests can detach it.  The stderr handler stays in place either way.
    """
    numeric = resolve_level(level)
    logger.setLevel(numeric)
    _stderr_handler.setLevel(numeric)
    if not log_dir:
        return None

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    file_handler = logging.FileHandler(
        log_path / f"{LOGGER_NAME}_{timestamp}.log",
        encoding="utf-8",
    )
    file_handler.setLevel(numeric)
    file_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT))
    logger.addHandler(file_handler)
    logger.debug("Writing run log to %s", file_handler.baseFilename)
    return file_handler


__all__ = ["LOG_LEVELS", "configure_logging", "logger", "resolve_level"]
