"""Lazy evaluation support for logging.

Debug lines in the query engine describe whole instruction sets (filters,
sort orders, decoded cursors). Building those strings is wasted work when
DEBUG is disabled, so the engine logs through ``LazyLoggerAdapter`` and
passes lambdas instead of pre-formatted strings.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any


class LazyString:
    """Lazy-evaluated string that defers computation until needed.

    Example:
        ```python
        logger.debug("Instructions: %s", LazyString(lambda: describe(parsed)))
        ```
    """

    __slots__ = ("_func",)

    def __init__(self, func: Callable[[], Any]) -> None:
        self._func = func

    def __str__(self) -> str:
        return str(self._func())

    def __repr__(self) -> str:
        return f"LazyString({self._func!r})"


class LazyLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that supports lazy evaluation of log messages.

    Callables passed as the message or as format arguments are only invoked
    when the level is enabled.

    Example:
        ```python
        logger = LazyLoggerAdapter(logging.getLogger(__name__))
        logger.debug(lambda: f"Parsed {len(parsed.filters)} filters")
        logger.info("Mode: %s", lambda: parsed.mode.value)
        ```
    """

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        """Merge bound context into ``extra`` without dropping call-site extras."""
        if self.extra:
            kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

    def log(
        self,
        level: int,
        msg: Any,
        *args: Any,
        **kwargs: Any,
    ) -> None:
        """Log message with lazy evaluation support.

        Args:
            level: Numeric log level (e.g., logging.DEBUG).
            msg: Log message or callable returning message.
            *args: Format arguments (may include callables).
            **kwargs: Additional kwargs for logging.
        """
        if not self.isEnabledFor(level):
            return

        if callable(msg):
            msg = msg()

        if args:
            args = tuple(arg() if callable(arg) else arg for arg in args)

        super().log(level, msg, *args, **kwargs)

    def debug(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, **kwargs)


def get_lazy_logger(name: str, **context: Any) -> LazyLoggerAdapter:
    """Get logger with lazy evaluation support.

    Args:
        name: Logger name (usually __name__).
        **context: Optional context to bind to logger.

    Returns:
        Logger adapter with lazy evaluation support.

    Example:
        ```python
        logger = get_lazy_logger(__name__, component="parser")
        logger.debug(lambda: f"Raw params: {sorted(params)}")
        ```
    """
    return LazyLoggerAdapter(logging.getLogger(name), context or {})


def lazy(func: Callable[[], Any]) -> LazyString:
    """Create a lazy-evaluated string.

    Example:
        ```python
        logger.debug("Cursor values: %s", lazy(lambda: json.dumps(values)))
        ```
    """
    return LazyString(func)
