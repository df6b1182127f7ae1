"""FastAPI dependencies that parse list-query parameters explicitly.

Parsing is an ordinary call to ``QueryShape.parse`` on the request's query
string, wrapped in a dependency so route handlers receive a ``ParsedQuery``:

    @router.get("/items")
    async def list_items(
        parsed: Annotated[ParsedQuery, Depends(paginated_query(items_shape))],
        session: Annotated[AsyncSession, Depends(get_session)],
        executor: Annotated[PaginationExecutor, Depends(get_pagination_executor)],
    ):
        return await executor.execute(session, select(Item), parsed)

Parse failures raise ``BadRequestException`` subclasses, rendered as problem
details by ``configure_exception_handlers``.
"""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from functools import lru_cache
from typing import Any

from fastapi import Request
from starlette.datastructures import QueryParams

from listquery.core.pagination.executor import PaginationExecutor
from listquery.core.pagination.parser import ParsedQuery
from listquery.core.pagination.registry import QueryShape, QueryShapeRegistry


def raw_params(query_params: QueryParams) -> dict[str, list[str]]:
    """Group repeated query parameters into lists, preserving order."""
    params: dict[str, list[str]] = {}
    for key, value in query_params.multi_items():
        params.setdefault(key, []).append(value)
    return params


def paginated_query(
    shape: QueryShape | str,
    registry: QueryShapeRegistry | None = None,
) -> Callable[[Request], Coroutine[Any, Any, ParsedQuery]]:
    """Dependency factory returning the parsed query for ``shape``.

    Args:
        shape: Query shape, or its name in ``registry``
        registry: Registry used to resolve a shape name

    Raises:
        PaginationConfigError: If ``shape`` is a name and cannot be resolved.
    """
    if isinstance(shape, str):
        if registry is None:
            msg = "A registry is required to resolve a query shape by name"
            raise ValueError(msg)
        shape = registry.get(shape)
    resolved = shape

    async def parse_list_query(request: Request) -> ParsedQuery:
        return resolved.parse(raw_params(request.query_params))

    parse_list_query.__name__ = f"parse_{resolved.name}_query"
    return parse_list_query


@lru_cache(maxsize=1)
def get_pagination_executor() -> PaginationExecutor:
    """Shared executor using the configured cursor codec."""
    return PaginationExecutor()


__all__ = ["get_pagination_executor", "paginated_query", "raw_params"]
