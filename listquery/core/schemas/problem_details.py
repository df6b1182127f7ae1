"""Body of the error responses sent for rejected list queries."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ProblemDetails(BaseModel):
    """Standard members of an ``application/problem+json`` body (RFC 7807).

    Query errors add their own members next to these (``parameter``,
    ``allowed``, ``use_parameter``); the exception handlers merge them in
    after ``model_dump``, so they are not declared here.

    ``type`` is a short slug such as ``invalid-query-parameter`` or
    ``invalid-cursor`` rather than a dereferenceable URI.
    """

    type: str = Field(
        default="about:blank",
        min_length=1,
        max_length=200,
        description="Problem type slug, e.g. invalid-query-parameter",
    )
    title: str = Field(min_length=1, max_length=200, description="Reason phrase of the status")
    status: int = Field(ge=400, le=599, description="HTTP status code")
    detail: str | None = Field(
        default=None,
        max_length=2000,
        description="What was wrong with the request",
    )
    instance: str | None = Field(
        default=None,
        max_length=2000,
        description="Request path and query string that was rejected",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "invalid-query-parameter",
                "title": "Bad Request",
                "status": 400,
                "detail": (
                    "'color' is not a valid sortable field. "
                    "Available sortable fields: name, price"
                ),
                "instance": "/api/v1/items?sortBy=color",
                "parameter": "sortBy",
                "allowed": ["name", "price"],
            }
        },
        str_strip_whitespace=True,
    )
