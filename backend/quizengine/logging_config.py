"""Logging configuration helpers for the quiz service."""

import logging
from logging import Logger


def configure_logging(level=logging.INFO) -> Logger:
    """Configure basic logging for the service and return the package logger."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    return logging.getLogger("quizengine")
