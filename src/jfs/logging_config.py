"""Logging setup for the jfs command line.

Call ``configure_logging()`` once at the CLI entry point. It is idempotent:
if the ``jfs`` logger already has handlers, it does nothing.
"""

import logging

FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: int = logging.WARNING) -> None:
    """Attach a stderr handler to the ``jfs`` package logger."""
    logger = logging.getLogger("jfs")
    logger.setLevel(level)
    if logger.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(FORMAT))
    logger.addHandler(handler)
