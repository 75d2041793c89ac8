"""Logger factory.

The first call to :func:`get_logger` configures logging from the settings;
later calls only hand out named loggers.
"""

import logging
from threading import Lock
from typing import Optional, Union

from ..config.settings import get_settings
from .config import setup_logging_configuration

_logging_configured = False
_configuration_lock = Lock()


def get_logger(name: Optional[str] = None, **extra_context) -> Union[logging.Logger, logging.LoggerAdapter]:
    """Return a configured logger.

    Args:
        name: Logger name, normally ``__name__``; None gives the package logger
        **extra_context: Fields attached to every record of the returned logger

    Example:
        ```python
        logger = get_logger(__name__)
        logger.info("Document deleted")

        action_logger = get_logger(__name__, action_id=42)
        action_logger.warning("Action failed")
        ```
    """
    configure_logging()

    base_logger = logging.getLogger(name or "docvault")
    if extra_context:
        return logging.LoggerAdapter(base_logger, extra_context)
    return base_logger


def configure_logging() -> None:
    """Configure logging once per process; later calls are no-ops."""
    global _logging_configured

    if _logging_configured:
        return

    with _configuration_lock:
        if _logging_configured:
            return
        setup_logging_configuration()
        _logging_configured = True

        settings = get_settings()
        logging.getLogger(__name__).info(
            f"Logging configured for {settings.ENVIRONMENT.value} environment",
            extra={"log_level": settings.LOG_LEVEL, "log_format": settings.LOG_FORMAT},
        )
