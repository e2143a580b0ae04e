from __future__ import annotations

import logging
import sys

"""Logging initialization with labeled prefixes.

Every line is prefixed with one of INFO|WARN|ERROR|SUMMARY. The SUMMARY level
sits between INFO and WARNING and is used for the one-line import summary.
"""

__all__ = [
    "setup_logging",
    "get_logger",
    "log_summary",
    "reset_logging",
    "LOGGER_NAME",
]

LOGGER_NAME = "arbolado_import"

# Custom SUMMARY level (between INFO=20 and WARNING=30)
SUMMARY_LEVEL = 25

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """Formatter that renders ``LABEL message``."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        level_label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        return f"{level_label} {record.getMessage()}"


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure the application logger (idempotent).

    Module loggers are created with ``logging.getLogger(__name__)`` under the
    ``arbolado`` package; they propagate to the root logger, so the labeled
    handler is attached to both the application logger and the package
    logger.

    Returns:
        Configured logger instance for the application
    """
    global _logger

    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(LabeledFormatter())

    for name in (LOGGER_NAME, "arbolado"):
        logger = logging.getLogger(name)
        logger.setLevel(level)
        for existing in logger.handlers[:]:
            logger.removeHandler(existing)
        logger.addHandler(handler)
        # Avoid duplicate output through the root logger
        logger.propagate = False

    _logger = logging.getLogger(LOGGER_NAME)
    return _logger


def get_logger() -> logging.Logger:
    if _logger is None:
        return setup_logging()
    return _logger


def set_debug(logger: logging.Logger) -> None:
    for name in (logger.name, "arbolado"):
        target = logging.getLogger(name)
        for h in target.handlers:
            h.setLevel(logging.DEBUG)
        target.setLevel(logging.DEBUG)


def log_summary(message: str) -> None:
    """Log a message at SUMMARY level."""
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Reset the global logger state. Mainly for testing purposes."""
    global _logger
    _logger = None
