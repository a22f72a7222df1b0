"""Logging setup for command-line runs."""

import logging

from rich.console import Console
from rich.logging import RichHandler

_FORMAT = "%(message)s"

_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def setup_logging(level: str = "warn", verbose: bool = False) -> logging.Logger:
    """Route library logging through a Rich handler.

    Args:
        level: Configured level name (error, warn, info, debug)
        verbose: Force debug level

    Returns:
        The package logger
    """
    resolved = logging.DEBUG if verbose else _LEVELS.get(str(level).lower(), logging.WARNING)
    logging.basicConfig(
        level=resolved,
        format=_FORMAT,
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, markup=False, show_path=False)],
        force=True,
    )
    return logging.getLogger("bundlecheck")
