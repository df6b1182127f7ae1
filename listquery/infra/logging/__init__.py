"""Logging infrastructure.

Basic usage:
    import logging

    from listquery.infra.logging import get_lazy_logger, setup_logging

    setup_logging()  # reads LOG_* settings once

    logger = logging.getLogger(__name__)
    logger.info("Query shape registered", extra={"shape": "items"})

    lazy_logger = get_lazy_logger(__name__)
    lazy_logger.debug(lambda: f"Expensive: {describe(parsed)}")  # Only runs if DEBUG enabled
"""

from listquery.infra.logging.config import configure_logging, setup_logging
from listquery.infra.logging.formatters import JSONFormatter
from listquery.infra.logging.lazy import LazyLoggerAdapter, LazyString, get_lazy_logger, lazy

__all__ = [
    "JSONFormatter",
    "LazyLoggerAdapter",
    "LazyString",
    "configure_logging",
    "get_lazy_logger",
    "lazy",
    "setup_logging",
]
