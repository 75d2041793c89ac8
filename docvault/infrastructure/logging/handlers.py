"""Log handlers for console and file output."""

import logging
import logging.handlers
import sys
from pathlib import Path

from .formatters import get_formatter


class ColoredConsoleHandler(logging.StreamHandler):
    """Console handler that colors the level name when writing to a TTY."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, stream=None):
        super().__init__(stream or sys.stdout)
        self.use_colors = hasattr(self.stream, "isatty") and self.stream.isatty() and sys.platform != "win32"

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        color = self.COLORS.get(record.levelname)
        if self.use_colors and color:
            formatted = formatted.replace(record.levelname, f"{color}{record.levelname}{self.RESET}", 1)
        return formatted


def create_console_handler(
    format_type: str = "detailed", level: int = logging.INFO, use_colors: bool = True
) -> logging.Handler:
    handler: logging.Handler = ColoredConsoleHandler() if use_colors else logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(get_formatter(format_type))
    return handler


def create_file_handler(
    filepath: str,
    format_type: str = "structured",
    level: int = logging.DEBUG,
    max_bytes: int = 10485760,
    backup_count: int = 5,
) -> logging.Handler:
    """Rotating file handler; the log directory is created if missing."""
    Path(filepath).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        filename=filepath, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(get_formatter(format_type))
    return handler
