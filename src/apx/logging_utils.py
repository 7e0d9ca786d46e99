"""Configure loguru sinks for the CLI."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from .constants import DEFAULT_LOG_LEVEL, ENV_LOG_LEVEL


_VALID_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


def resolve_log_level(verbose: bool = False, quiet: bool = False) -> str:
    """Pick the stderr log level from CLI flags, falling back to ``APX_LOG_LEVEL``.

    Args:
        verbose: ``--verbose`` was passed.
        quiet: ``--quiet`` was passed.

    Returns:
        An upper-case loguru level name.
    """
    if verbose:
        return "DEBUG"
    if quiet:
        return "ERROR"
    env_level = os.environ.get(ENV_LOG_LEVEL, "").strip().upper()
    if env_level in _VALID_LEVELS:
        return env_level
    return DEFAULT_LOG_LEVEL


def configure_logging(level: str = DEFAULT_LOG_LEVEL, log_file: Optional[Path] = None) -> None:
    """Configure loguru logger with the specified level.

    Args:
        level: Minimum level for the stderr sink.
        log_file: Optional file that receives every record at DEBUG level.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{module}</cyan>:<cyan>{line}</cyan>\n"
            "{message}"
        ),
    )
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_file),
            level="DEBUG",
            mode="a",
            encoding="utf-8",
            format="{time:x}: {level: <8} {message}",
        )
        logger.debug(">>> Starting new log")
