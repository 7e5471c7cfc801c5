"""Logging configuration for crisisfeed."""

import logging
import os
from pathlib import Path

LOG_FILE = Path(os.environ.get("CRISISFEED_LOG_FILE", "crisisfeed.log"))
EXCERPT_LENGTH = 500


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger for the given module name."""
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        logger.setLevel(logging.DEBUG)

        # File handler - logs everything
        file_handler = logging.FileHandler(LOG_FILE, mode="a")
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

        # Keep uvicorn's console output clean
        logger.propagate = False

    return logger


def truncate(text: str, limit: int = EXCERPT_LENGTH) -> str:
    """Shorten model output for log lines."""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}... [{len(text) - limit} more chars]"
