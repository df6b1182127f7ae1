"""Pagination response schemas.

Two response shapes, one per pagination mode:

1. Offset pages: ``{"data": [...], "page": 2, "limit": 20}``
2. Cursor pages: ``{"data": [...], "nextCursor": "eyJpZCI6NDJ9"}``

``nextCursor`` is ``null`` exactly when there are no further rows.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")
U = TypeVar("U")


class OffsetPage(BaseModel, Generic[T]):
    """Page of an offset-paginated query.

    Usage:
        @router.get("/items", response_model=OffsetPage[ItemResponse])
        async def list_items(...):
            ...

    Attributes:
        data: Rows of the requested page
        page: 1-based page number
        limit: Page size
    """

    data: list[T] = Field(default_factory=list, description="Rows of this page")
    page: int = Field(ge=1, description="1-based page number")
    limit: int = Field(ge=1, description="Page size")

    def map_data(self, func: Callable[[T], U]) -> OffsetPage[U]:
        """Return a copy with every row converted by ``func``."""
        return OffsetPage[Any](
            data=[func(row) for row in self.data], page=self.page, limit=self.limit
        )


class CursorPage(BaseModel, Generic[T]):
    """Page of a cursor-paginated query.

    Client navigation:
        # First page
        GET /items?limit=10

        # Next page (using nextCursor from the previous response)
        GET /items?limit=10&cursor=eyJpZCI6MTB9

    Attributes:
        data: Rows of this page
        next_cursor: Token for the next page, ``None`` on the last page
            (serialized as ``nextCursor``)
    """

    model_config = ConfigDict(populate_by_name=True)

    data: list[T] = Field(default_factory=list, description="Rows of this page")
    next_cursor: str | None = Field(
        default=None,
        alias="nextCursor",
        description="Cursor for the next page, null when there are no more rows",
    )

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None

    def map_data(self, func: Callable[[T], U]) -> CursorPage[U]:
        """Return a copy with every row converted by ``func``."""
        return CursorPage[Any](data=[func(row) for row in self.data], next_cursor=self.next_cursor)


__all__ = ["CursorPage", "OffsetPage"]
