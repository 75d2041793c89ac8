"""Log record formatters.

Available formats:
- simple: ``[LEVEL] logger: message``
- detailed: timestamp, padded level and logger name
- structured: ``key=value`` pairs, readable and grep-friendly
- json: one JSON object per record for log aggregation
"""

import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Type

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRIBUTES = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {key: value for key, value in record.__dict__.items() if key not in _RECORD_ATTRIBUTES}


class SimpleFormatter(logging.Formatter):
    """Format: ``[INFO] docvault.modules.tag.store: Created tag 3``"""

    def __init__(self):
        super().__init__(fmt="[%(levelname)s] %(name)s: %(message)s")


class DetailedFormatter(logging.Formatter):
    """Format: ``2024-01-01 12:00:00 [    INFO] logger: message``"""

    def __init__(self):
        super().__init__(fmt="%(asctime)s [%(levelname)8s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")


class StructuredFormatter(logging.Formatter):
    """Key-value output including correlation id and ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            f"timestamp={datetime.fromtimestamp(record.created, timezone.utc).isoformat()}",
            f"level={record.levelname}",
            f"logger={record.name}",
            f'message="{record.getMessage()}"',
        ]
        for key, value in _extra_fields(record).items():
            if isinstance(value, (int, float, bool)):
                parts.append(f"{key}={value}")
            else:
                parts.append(f'{key}="{value}"')

        if record.exc_info:
            exc_text = self.formatException(record.exc_info).replace("\n", "\\n")
            parts.append(f'exception="{exc_text}"')

        return " ".join(parts)


class JSONFormatter(logging.Formatter):
    """Machine-readable JSON output."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line_number": record.lineno,
        }

        for key, value in _extra_fields(record).items():
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_data, ensure_ascii=False)


FORMATTERS: Dict[str, Type[logging.Formatter]] = {
    "simple": SimpleFormatter,
    "detailed": DetailedFormatter,
    "structured": StructuredFormatter,
    "json": JSONFormatter,
}


def get_formatter(format_type: str) -> logging.Formatter:
    """Instantiate the formatter named ``format_type``.

    Raises:
        ValueError: If the name is unknown
    """
    formatter_class = FORMATTERS.get(format_type.lower())
    if formatter_class is None:
        raise ValueError(f"Unknown format type: {format_type}. Available: {', '.join(FORMATTERS)}")
    return formatter_class()
