"""Centralized logging configuration."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union

CONSOLE_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(message)s%(context)s'
FILE_FORMAT = (
    '%(asctime)s | %(levelname)s | %(name)s | %(funcName)s:%(lineno)d | %(message)s%(context)s'
)
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
ROOT_LOGGER = "ballerevents"

# Keys passed through ``extra=`` that are rendered after the message
CONTEXT_KEYS = ("event_id", "user_id", "notification_id", "count")


class ContextFilter(logging.Filter):
    """Render known ``extra`` keys as a ``[key=value ...]`` suffix."""

    def filter(self, record: logging.LogRecord) -> bool:
        parts = [
            f"{key}={getattr(record, key)}"
            for key in CONTEXT_KEYS
            if getattr(record, key, None) is not None
        ]
        record.context = f" [{' '.join(parts)}]" if parts else ""
        return True


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for terminal output."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        # Other handlers must see the plain level name
        original = record.levelname
        color = self.COLORS.get(original, self.RESET)
        record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def setup_logger(
    name: str = ROOT_LOGGER,
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    colored: bool = True
) -> logging.Logger:
    """Configure and return a logger instance.

    Args:
        name: Logger name
        level: Logging level (number or name such as ``"DEBUG"``)
        log_file: Optional file path for file logging
        colored: Whether to use colored output for console

    Returns:
        Configured logger instance
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.filters.clear()

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.addFilter(ContextFilter())

    if colored:
        formatter = ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT)
    else:
        formatter = logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT)

    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler if specified
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.addFilter(ContextFilter())
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger by name, nested under the application root logger."""
    if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
