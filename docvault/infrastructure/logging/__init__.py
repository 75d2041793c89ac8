"""Centralized logging for DocVault.

Services obtain loggers through :func:`get_logger`; handlers, formatters and
levels are chosen once from the environment settings on first use.

Usage:
    ```python
    from docvault.infrastructure.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Document stored")
    ```
"""

from .config import (
    configure_testing_logging,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
    setup_logging_configuration,
)
from .factory import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "configure_testing_logging",
    "generate_correlation_id",
    "get_correlation_id",
    "get_logger",
    "set_correlation_id",
    "setup_logging_configuration",
]
