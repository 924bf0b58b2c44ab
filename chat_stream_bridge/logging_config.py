"""
Logging Configuration Module

Console logging is configured once at startup from the LOG_LEVEL
environment variable; the server also keeps a rotating DEBUG file per run.

Environment Variables:
    LOG_LEVEL: Console verbosity (default: INFO)
        - DEBUG: everything, including per-event emitter traces
        - INFO: request lifecycle and detected tool calls
        - WARNING: dropped upstream lines, unbalanced captures, upstream failures
        - ERROR: errors only
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

from loguru import logger


VALID_LOG_LEVELS: set[str] = {"DEBUG", "INFO", "WARNING", "ERROR"}

DEFAULT_LOG_LEVEL = "INFO"

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - {message}"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"

# Run names in log file names use JST
_JST = timezone(timedelta(hours=9))


def get_log_level() -> str:
    """
    Returns:
        str: DEBUG, INFO, WARNING or ERROR. Falls back to INFO if invalid or unset.
    """
    level = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper()
    return level if level in VALID_LOG_LEVELS else DEFAULT_LOG_LEVEL


def configure_logging() -> None:
    """Replace loguru's default stderr sink with one at LOG_LEVEL."""
    level = get_log_level()
    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)
    logger.debug(f"Logging configured: console level={level}")


def configure_file_logging(log_dir: str | Path = "logs", run_name: str | None = None) -> Path:
    """
    Add a DEBUG file sink, rotated at 100 MB and kept for 7 days.

    Args:
        log_dir: Directory for log files, created if missing
        run_name: File name suffix (default: CHUNK_LOGGER_SESSION_ID, else a JST timestamp)

    Returns:
        Path of the log file
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    run_name = run_name or os.getenv("CHUNK_LOGGER_SESSION_ID") or datetime.now(_JST).strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"server_{run_name}.log"
    logger.add(log_file, rotation="100 MB", retention="7 days", level="DEBUG", format=FILE_FORMAT)
    return log_file
