"""Exception handlers that render query errors as RFC 7807 problem details."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from listquery.core.exceptions import AppException
from listquery.core.schemas import ProblemDetails

logger = logging.getLogger(__name__)

PROBLEM_JSON = "application/problem+json"
HTTP_422 = 422


class ProblemJSONResponse(JSONResponse):
    """JSON response served as ``application/problem+json``."""

    media_type = PROBLEM_JSON


def _get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _create_problem_detail(
    status_code: int,
    detail: str,
    type_: str = "about:blank",
    title: str | None = None,
    instance: str | None = None,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create RFC 7807 Problem Details response.

    Args:
        status_code: HTTP status code.
        detail: Human-readable error description.
        type_: Error type identifier.
        title: Short human-readable summary.
        instance: URI identifying this occurrence.
        extra: Additional members merged into the body.

    Returns:
        Dictionary representing the problem detail.
    """
    problem = ProblemDetails(
        type=type_,
        title=title or AppException._default_title(status_code),
        status=status_code,
        detail=detail,
        instance=instance,
    )

    response_data = problem.model_dump(exclude_none=True)
    if extra:
        response_data.update(extra)

    return response_data


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Convert an ``AppException`` into a problem details response.

    Invalid limits, unknown sort aliases, disallowed pagination modes and bad
    cursors all arrive here as ``BadRequestException`` subclasses.
    """
    request_id = _get_request_id(request)

    logger.warning(
        "Application exception occurred",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "exception_type": exc.type,
            "status_code": exc.status_code,
            "detail": exc.detail,
        },
    )

    problem_data = _create_problem_detail(
        status_code=exc.status_code,
        detail=exc.detail,
        type_=exc.type,
        title=exc.title,
        instance=exc.instance or str(request.url),
        extra=exc.extra,
    )
    if request_id:
        problem_data["request_id"] = request_id

    return ProblemJSONResponse(status_code=exc.status_code, content=problem_data)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI request validation errors (path/body parameters)."""
    request_id = _get_request_id(request)
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning(
        "Request validation failed",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "error_count": len(errors),
        },
    )

    problem_data = _create_problem_detail(
        status_code=HTTP_422,
        detail=f"Request validation failed for {len(errors)} field(s)",
        type_="validation-error",
        title="Validation Error",
        instance=str(request.url),
        extra={"errors": errors},
    )
    if request_id:
        problem_data["request_id"] = request_id

    return ProblemJSONResponse(
        status_code=HTTP_422,
        content=problem_data,
    )


def configure_exception_handlers(app: FastAPI) -> None:
    """Register the problem details handlers on ``app``.

    Example:
        app = FastAPI()
        configure_exception_handlers(app)
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    logger.info("Exception handlers configured")


__all__ = [
    "ProblemJSONResponse",
    "app_exception_handler",
    "configure_exception_handlers",
    "validation_exception_handler",
]
