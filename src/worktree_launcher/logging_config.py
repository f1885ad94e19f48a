"""Logging configuration for worktree-launcher."""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "worktree_launcher"


def setup_logging(verbose: bool = False) -> None:
    """
    Configure the package logger.

    Diagnostics go to stderr through a RichHandler so they never mix with
    the command output printed on stdout.

    Args:
        verbose: Show DEBUG messages (every git and tool command) instead of
            warnings only
    """
    level = logging.DEBUG if verbose else logging.WARNING

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=verbose,
        show_path=False,
        markup=False,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module of this package.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance under the package logger
    """
    if not name.startswith(LOGGER_NAME):
        name = f"{LOGGER_NAME}.{name}"
    return logging.getLogger(name)
