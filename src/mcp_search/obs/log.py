"""Logging setup shared by the API and its collaborators."""

from __future__ import annotations

import logging

LOGGER_NAME = "mcp_search"
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def create_logger(log_level: str = "INFO", logger_name: str = LOGGER_NAME) -> logging.Logger:
    """Configure the package logger with a single console handler.

    Module loggers are created with `logging.getLogger(__name__)` and propagate
    to this one, so calling it again only updates the level.
    """

    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
    return logger
