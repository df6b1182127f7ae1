"""Shared response schemas."""

from listquery.core.schemas.problem_details import ProblemDetails

__all__ = ["ProblemDetails"]
