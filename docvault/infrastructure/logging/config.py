"""Environment-aware logging setup.

- development: colored detailed console output, optional structured file log
- staging: console in ``LOG_FORMAT`` plus optional file log
- production: JSON console output, chatty libraries turned down

Every record carries a ``correlation_id`` taken from the current request
context, set by the HTTP middleware.
"""

import contextvars
import logging
import uuid
from typing import List, Optional

from ..config.settings import EnvironmentOption, Settings, get_settings
from .handlers import create_console_handler, create_file_handler

correlation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("correlation_id", default=None)

NOISY_LOGGERS = ("asyncpg", "aiosqlite", "sqlalchemy.engine", "sqlalchemy.pool", "sqlalchemy.dialects")


class CorrelationIdFilter(logging.Filter):
    """Adds ``correlation_id`` to every record passing through a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "no-correlation"
        return True


def setup_logging_configuration() -> None:
    """Install root handlers for the configured environment. Call once at startup."""
    settings = get_settings()

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    if settings.ENVIRONMENT == EnvironmentOption.PRODUCTION:
        handlers = _production_handlers(settings)
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
    elif settings.ENVIRONMENT == EnvironmentOption.STAGING:
        handlers = _staging_handlers(settings)
    else:
        handlers = _development_handlers(settings)

    for handler in handlers:
        if settings.LOG_CORRELATION_ID:
            handler.addFilter(CorrelationIdFilter())
        root_logger.addHandler(handler)

    root_logger.setLevel(settings.LOG_LEVEL_INT)


def _file_handler(settings: Settings) -> logging.Handler:
    return create_file_handler(
        filepath=settings.LOG_FILE_PATH,
        format_type="structured",
        level=logging.DEBUG,
        max_bytes=settings.LOG_FILE_MAX_SIZE,
        backup_count=settings.LOG_FILE_BACKUP_COUNT,
    )


def _development_handlers(settings: Settings) -> List[logging.Handler]:
    handlers = []
    if settings.LOG_CONSOLE_ENABLED:
        level = logging.DEBUG if settings.LOG_DEVELOPMENT_VERBOSE else settings.LOG_LEVEL_INT
        handlers.append(create_console_handler(format_type="detailed", level=level, use_colors=True))
    if settings.LOG_FILE_ENABLED:
        handlers.append(_file_handler(settings))
    return handlers


def _staging_handlers(settings: Settings) -> List[logging.Handler]:
    handlers = []
    if settings.LOG_CONSOLE_ENABLED:
        handlers.append(
            create_console_handler(format_type=settings.LOG_FORMAT, level=settings.LOG_LEVEL_INT, use_colors=False)
        )
    if settings.LOG_FILE_ENABLED:
        handlers.append(_file_handler(settings))
    return handlers


def _production_handlers(settings: Settings) -> List[logging.Handler]:
    handlers = []
    if settings.LOG_CONSOLE_ENABLED:
        level = logging.WARNING if settings.LOG_PRODUCTION_OPTIMIZE else settings.LOG_LEVEL_INT
        handlers.append(create_console_handler(format_type="json", level=level, use_colors=False))
    if settings.LOG_FILE_ENABLED:
        handlers.append(_file_handler(settings))
    return handlers


def configure_testing_logging() -> None:
    """Keep test output quiet: root at WARNING, database drivers at ERROR.

    Handlers are left alone so pytest's ``caplog`` keeps working.
    """
    logging.getLogger().setLevel(logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.ERROR)


def set_correlation_id(correlation_id: Optional[str]) -> contextvars.Token:
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()


def generate_correlation_id() -> str:
    return uuid.uuid4().hex
