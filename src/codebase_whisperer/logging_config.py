"""Logging setup: rich-formatted records on stderr."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "codebase_whisperer"


def setup_logging(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """Install a RichHandler on the package logger and return it.

    verbose -> DEBUG, quiet -> ERROR, otherwise WARNING.
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        markup=False,
        show_time=verbose,
        show_path=verbose,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logger = logging.getLogger(LOGGER_NAME)
    for existing in list(logger.handlers):
        if isinstance(existing, RichHandler):
            logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
