"""Logging helpers for classify-llm."""

import logging
import sys

PACKAGE_LOGGER = "classify_llm"

_INITIALIZED = False


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module, usually called with ``__name__``."""
    return logging.getLogger(name)


def init_logging(level: int = logging.INFO) -> None:
    """Attach a console handler to the package logger. Safe to call multiple times.

    Args:
        level: Minimum level emitted by the package logger (default: INFO)
    """
    global _INITIALIZED
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    if _INITIALIZED:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)
    _INITIALIZED = True
