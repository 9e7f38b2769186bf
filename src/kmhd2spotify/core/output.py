"""
Unified output system using Loguru.
All user-facing progress lines go through log() so they land in the log file too.
"""

import sys
import threading
from pathlib import Path
from typing import Optional

from loguru import logger

from kmhd2spotify.core.config import LoggingConfig, get_data_dir

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[component]: <10} | {name}:{line} | {message}"

# Background threads set this to keep stdout clean
_quiet = threading.local()

logger.configure(extra={"component": "app"})


def setup_logging(config: LoggingConfig, debug: bool = False) -> Path:
    """
    Configure loguru with a rotating file sink and an optional stderr sink.

    Args:
        config: Logging section of the loaded configuration
        debug: Force DEBUG level regardless of config

    Returns:
        Path of the log file in use
    """
    level = "DEBUG" if debug else config.level

    if config.log_file:
        log_file = Path(config.log_file)
    else:
        log_file = get_data_dir() / "kmhd2spotify.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Remove default handler
    logger.remove()

    logger.add(
        log_file,
        rotation=f"{config.max_file_size_mb} MB",
        retention=config.backup_count,
        level=level,
        format=LOG_FORMAT,
        enqueue=False,  # Synchronous writes
    )

    # Console sink only carries warnings unless debugging; log() prints the rest
    if config.console_output:
        logger.add(
            sys.stderr,
            level="DEBUG" if debug else "WARNING",
            format="<level>{level: <8}</level> | {extra[component]} | {message}",
        )

    logger.info(f"Loguru initialized: {log_file} (level={level})")
    return log_file


def set_quiet(quiet: bool = True) -> None:
    """Suppress stdout printing from log() on the current thread."""
    _quiet.active = quiet


def log(message: str, level: str = "info") -> None:
    """
    Unified logging: writes to the log file AND prints to stdout.

    Use this instead of print() for user-facing messages that should also be logged.

    Args:
        message: User-facing message (can include emojis)
        level: Log level (debug, info, warning, error)
    """
    log_func = getattr(logger.opt(depth=1), level)
    log_func(message)

    if level == "debug" or getattr(_quiet, "active", False):
        return
    print(message)
