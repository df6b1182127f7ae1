"""Custom exception classes for the query engine.

Two families live here:

- ``AppException`` and its subclasses are client-facing failures. They carry
  RFC 7807 Problem Details fields so a host application can render them
  directly (see ``listquery.app.exception_handlers``).
- ``PaginationConfigError`` is raised while query shapes are being declared.
  It signals a programming or configuration mistake and never reaches a
  client request.
"""

from __future__ import annotations

from typing import Any


class AppException(Exception):
    """Base application exception.

    All client-facing exceptions inherit from this class.
    Follows RFC 7807 Problem Details for HTTP APIs.

    Attributes:
        status_code: HTTP status code for the error.
        detail: Human-readable error message.
        type: Error type identifier (used in RFC 7807 problem details).
        title: Short, human-readable summary of the problem type.
        instance: URI reference that identifies the specific occurrence of the problem.
        extra: Additional context-specific information about the error.

    Example:
        raise AppException(
            status_code=400,
            detail="Limit value 500 exceeds maximum allowed limit of 100",
            type="invalid-query-parameter",
            extra={"parameter": "limit"},
        )
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        type: str = "about:blank",
        title: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application exception.

        Args:
            status_code: HTTP status code.
            detail: Human-readable error message.
            type: Error type identifier.
            title: Short summary of the problem type.
            instance: URI reference identifying this specific occurrence.
            extra: Additional context about the error.
        """
        self.status_code = status_code
        self.detail = detail
        self.type = type
        self.title = title or self._default_title(status_code)
        self.instance = instance
        self.extra = extra or {}
        super().__init__(detail)

    @staticmethod
    def _default_title(status_code: int) -> str:
        """Get default title for HTTP status code.

        Args:
            status_code: HTTP status code.

        Returns:
            Human-readable title for the status code.
        """
        titles = {
            400: "Bad Request",
            404: "Not Found",
            422: "Unprocessable Entity",
            500: "Internal Server Error",
        }
        return titles.get(status_code, "Error")


class BadRequestException(AppException):
    """Exception raised for malformed requests.

    Example:
        raise BadRequestException(
            detail="Invalid request format",
            type="bad-request",
            extra={"reason": "missing required field"}
        )
    """

    def __init__(
        self,
        detail: str,
        type: str = "bad-request",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize bad request exception.

        Args:
            detail: Human-readable error message.
            type: Error type identifier.
            instance: URI reference identifying this specific occurrence.
            extra: Additional context about the error.
        """
        super().__init__(
            status_code=400,
            detail=detail,
            type=type,
            title="Bad Request",
            instance=instance,
            extra=extra,
        )


class InvalidQueryParameterException(BadRequestException):
    """A query-string parameter was rejected.

    The offending parameter is always named in ``extra["parameter"]``.
    When the set of acceptable values is small and known (sortable aliases,
    sort orders) it is listed in ``extra["allowed"]``.

    Example:
        raise InvalidQueryParameterException(
            parameter="sortBy",
            detail="'colour' is not a valid sortable field. Available sortable fields: name, price",
            allowed=["name", "price"],
        )
    """

    def __init__(
        self,
        parameter: str,
        detail: str,
        allowed: list[str] | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        context: dict[str, Any] = {"parameter": parameter}
        if allowed is not None:
            context["allowed"] = allowed
        if extra:
            context.update(extra)
        super().__init__(
            detail=detail,
            type="invalid-query-parameter",
            extra=context,
        )
        self.parameter = parameter
        self.allowed = allowed


class PaginationModeException(BadRequestException):
    """The requested pagination style is not enabled for the endpoint.

    ``extra["use_parameter"]`` names the parameter the client should use
    instead (``page`` or ``cursor``).
    """

    def __init__(self, detail: str, parameter: str, use_parameter: str) -> None:
        super().__init__(
            detail=detail,
            type="pagination-mode-not-allowed",
            extra={"parameter": parameter, "use_parameter": use_parameter},
        )
        self.parameter = parameter
        self.use_parameter = use_parameter


class InvalidCursorException(BadRequestException):
    """The cursor token could not be decoded or does not fit the sort order.

    Cursors are opaque client-held state; a corrupted, stale or tampered
    token is a client error rather than a server error.
    """

    def __init__(self, detail: str = "Invalid cursor: unable to decode") -> None:
        super().__init__(
            detail=detail,
            type="invalid-cursor",
            extra={"parameter": "cursor"},
        )


class PaginationConfigError(Exception):
    """A query shape or pagination policy was declared incorrectly.

    Raised at registration time, before any request is served. This is a
    programming error and is not mapped to an HTTP response.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize configuration error.

        Args:
            message: Error description
            details: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Format error message with details."""
        if self.details:
            details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


__all__ = [
    "AppException",
    "BadRequestException",
    "InvalidCursorException",
    "InvalidQueryParameterException",
    "PaginationConfigError",
    "PaginationModeException",
]
