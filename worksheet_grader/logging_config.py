"""
Logging setup for the Worksheet Grader.

Library modules only create module-level loggers; handlers are installed
by the CLI through `configure_logging`.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "worksheet_grader"


def configure_logging(level: int | str = "INFO", console: Console | None = None) -> logging.Logger:
    """
    Configure the package logger to render through rich.

    Args:
        level: Logging level as int or string (e.g., logging.INFO or "INFO").
        console: Console to write to. Defaults to stderr.

    Returns:
        The package logger.
    """
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers = [handler]
    logger.setLevel(level)
    return logger
