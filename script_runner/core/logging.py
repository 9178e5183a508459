"""
Logging setup for Script Runner.

All package loggers live under the ``script_runner`` namespace so a host can
route them with a single handler.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "script_runner"

_LOG_FORMAT = "%(message)s"
_PLAIN_FORMAT = "%(asctime)s %(levelname)-7s %(name)s | %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under ``script_runner``."""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logging(
    level: str | int = "INFO",
    *,
    rich_output: bool = True,
    console: Console | None = None,
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Logging level name or number
        rich_output: Render records with Rich instead of plain text
        console: Optional Rich console to log to (defaults to stderr)

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    if rich_output:
        handler: logging.Handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_PLAIN_FORMAT))

    logger.addHandler(handler)
    logger.propagate = False
    return logger
