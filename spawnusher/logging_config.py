"""spawnusher/logging_config.py — Console/file logging for hosts and the scenario CLI.

Library modules only create ``logging.getLogger(__name__)`` loggers; a host
that wants to see placement activity calls setup_logging() once.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%H:%M:%S"


def setup_logging(level: int = logging.INFO, log_file: str | None = None) -> logging.Logger:
    """Route the ``spawnusher`` logger to stdout and, optionally, *log_file*.

    Calling it again replaces the handlers from the previous call.

    Returns:
        The configured ``spawnusher`` logger.
    """
    logger = logging.getLogger("spawnusher")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.debug("Logging initialized at %s", logging.getLevelName(level))
    return logger
