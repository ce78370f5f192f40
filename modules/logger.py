"""Logging setup shared by every NarraForm module.

Each module obtains its logger through ``setup_logger(__name__)``. Console
output stays quiet (warnings and errors only) unless verbose mode is enabled;
a file handler with the detailed format can be attached for diagnostics.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union

__all__ = [
    "setup_logger",
    "set_log_level",
    "setup_console_handler",
    "setup_file_handler",
    "configure_logging",
]

DEFAULT_LOG_LEVEL = logging.INFO
USER_LOG_LEVEL = logging.WARNING
DETAILED_FORMAT = "[%(levelname)s] %(asctime)s - %(name)s - %(message)s"
SIMPLE_FORMAT = "[%(levelname)s] %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers handed out by setup_logger, so configure_logging can retune them.
_MANAGED_LOGGERS: dict[str, logging.Logger] = {}


def setup_logger(
    name: str,
    level: int = DEFAULT_LOG_LEVEL,
    format_string: Optional[str] = None,
    date_format: Optional[str] = None,
    verbose: bool = False,
) -> logging.Logger:
    """
    Create or fetch a logger configured the NarraForm way.

    A stderr handler is attached only the first time a given name is seen,
    so repeated calls never duplicate output.

    Args:
        name: Logger name, normally ``__name__`` of the caller
        level: Level of the logger itself
        format_string: Override for the console format
        date_format: Override for the timestamp format
        verbose: Show everything at ``level`` on the console instead of
            warnings and errors only

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level if verbose else USER_LOG_LEVEL)
        console_handler.setFormatter(
            logging.Formatter(
                fmt=format_string or SIMPLE_FORMAT,
                datefmt=date_format or DEFAULT_DATE_FORMAT,
            )
        )
        logger.addHandler(console_handler)
        logger.setLevel(level)
        logger.propagate = False

    _MANAGED_LOGGERS[name] = logger
    return logger


def setup_console_handler(
    logger: logging.Logger,
    level: int = USER_LOG_LEVEL,
    simple_format: bool = True,
) -> None:
    """Replace the stderr handler of ``logger`` with one at ``level``."""
    for handler in logger.handlers[:]:
        if isinstance(handler, logging.StreamHandler) and not isinstance(
            handler, logging.FileHandler
        ):
            logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter(
            fmt=SIMPLE_FORMAT if simple_format else DETAILED_FORMAT,
            datefmt=DEFAULT_DATE_FORMAT,
        )
    )
    logger.addHandler(console_handler)


def setup_file_handler(
    logger: logging.Logger,
    log_file_path: Union[str, Path],
    level: int = logging.DEBUG,
) -> None:
    """Append detailed records of ``logger`` to ``log_file_path``."""
    path = Path(log_file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(
        logging.Formatter(fmt=DETAILED_FORMAT, datefmt=DEFAULT_DATE_FORMAT)
    )
    logger.addHandler(file_handler)


def set_log_level(logger: logging.Logger, level: int) -> None:
    """Change the level of ``logger`` and all of its handlers."""
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)


def configure_logging(
    verbose: bool = False,
    log_file: Optional[Union[str, Path]] = None,
) -> None:
    """
    Apply run-wide logging options to every logger created so far.

    Called once by the CLI after settings are loaded.
    """
    console_level = logging.DEBUG if verbose else USER_LOG_LEVEL
    for logger in _MANAGED_LOGGERS.values():
        setup_console_handler(logger, level=console_level, simple_format=not verbose)
        if verbose:
            logger.setLevel(logging.DEBUG)
        if log_file:
            setup_file_handler(logger, log_file)
