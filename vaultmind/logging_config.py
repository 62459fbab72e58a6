"""
Logging configuration for vaultmind.

Library code only creates module loggers; the CLI decides where records go.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "vaultmind"


def configure_logging(verbose: bool = False, console: Console | None = None) -> logging.Logger:
    """
    Route vaultmind log records to stderr through rich.

    Args:
        verbose: DEBUG level when True, WARNING otherwise

    Returns:
        The package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    # Re-running (e.g. several CLI invocations in one process) must not stack handlers
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        markup=False,
        rich_tracebacks=verbose,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="%H:%M:%S"))
    logger.addHandler(handler)
    return logger
