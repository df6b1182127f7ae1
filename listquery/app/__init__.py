"""FastAPI integration: request dependencies and problem details handlers."""

from listquery.app.dependencies import get_pagination_executor, paginated_query, raw_params
from listquery.app.exception_handlers import configure_exception_handlers

__all__ = [
    "configure_exception_handlers",
    "get_pagination_executor",
    "paginated_query",
    "raw_params",
]
