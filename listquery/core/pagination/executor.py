"""Execute parsed list queries against an ``AsyncSession``.

The executor takes a caller-built base statement (joins, scoping and any
fixed conditions already applied) and a ``ParsedQuery``, then adds the
filters, ordering and paging the client asked for:

- **Offset path**: filters, ``ORDER BY``, ``LIMIT``/``OFFSET``.
- **Cursor path**: filters, seek predicate past the decoded cursor,
  ``ORDER BY`` with the key column appended, ``LIMIT limit + 1``. The extra
  row is trimmed and signals that ``nextCursor`` must be set. The sort values
  are selected under extra labels and removed from the returned rows.

``select(Entity)`` yields entities. Any other statement yields one mapping
per row (``RowMapping`` on the offset path, ``dict`` on the cursor path).

Example:
    executor = PaginationExecutor()

    @router.get("/items")
    async def list_items(
        session: AsyncSession = Depends(get_session),
        parsed: ParsedQuery = Depends(paginated_query(items_shape)),
    ):
        return await executor.execute(session, select(Item), parsed)

Database errors propagate unchanged.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from listquery.core.exceptions import PaginationModeException
from listquery.core.pagination.constants import CURSOR_PARAM, PAGE_PARAM, PaginationMode
from listquery.core.pagination.cursor import CursorCodec, extract_cursor_values, get_cursor_codec
from listquery.core.pagination.filters import (
    FilterSet,
    LimitOffset,
    OrderBy,
    SeekFilter,
    ensure_key_sort,
)
from listquery.core.pagination.schemas import CursorPage, OffsetPage
from listquery.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from sqlalchemy import Result, Row, Select
    from sqlalchemy.ext.asyncio import AsyncSession

    from listquery.core.pagination.parser import ParsedQuery

_lazy = get_lazy_logger(__name__)


def selects_single_entity(statement: Select[Any]) -> bool:
    """Whether ``statement`` selects exactly one mapped entity (``select(Item)``)."""
    descriptions = statement.column_descriptions
    if len(descriptions) != 1:
        return False
    entity = descriptions[0].get("entity")
    return entity is not None and descriptions[0].get("expr") is entity


def _rows(result: Result[Any], statement: Select[Any]) -> list[Any]:
    if selects_single_entity(statement):
        return list(result.scalars().all())
    return list(result.mappings().all())


def _strip_cursor_columns(
    rows: Sequence[Row[Any]],
    statement: Select[Any],
    labels: Sequence[str],
) -> list[Any]:
    """Drop the sort-value columns ``SeekFilter`` appended to each row."""
    if selects_single_entity(statement):
        return [row[0] for row in rows]
    hidden = set(labels)
    return [
        {key: value for key, value in row._mapping.items() if key not in hidden} for row in rows
    ]


class PaginationExecutor:
    """Apply a ``ParsedQuery`` to a base statement and fetch one page.

    Args:
        codec: Cursor codec; defaults to the one configured by
            ``PaginationSettings`` (signed when a cursor secret is set).
    """

    __slots__ = ("codec",)

    def __init__(self, codec: CursorCodec | None = None) -> None:
        self.codec = codec if codec is not None else get_cursor_codec()

    async def execute(
        self,
        session: AsyncSession,
        statement: Select[Any],
        parsed: ParsedQuery,
    ) -> OffsetPage[Any] | CursorPage[Any]:
        """Run ``parsed`` against ``statement``.

        Args:
            session: Database session
            statement: Base select statement (without paging)
            parsed: Output of ``parse_query`` for the same query shape

        Returns:
            ``OffsetPage`` in offset mode, ``CursorPage`` in cursor mode.

        Raises:
            PaginationModeException: If the parsed mode is not allowed by the
                shape's policy.
            InvalidCursorException: If the cursor cannot be decoded or does
                not match the current sort.
        """
        self.validate_mode(parsed)
        if parsed.is_cursor:
            return await self.execute_cursor(session, statement, parsed)
        return await self.execute_offset(session, statement, parsed)

    @staticmethod
    def validate_mode(parsed: ParsedQuery) -> None:
        """Reject a parsed mode the shape's policy does not allow."""
        policy = parsed.policy
        if parsed.mode is PaginationMode.CURSOR and not policy.allows_cursor:
            msg = (
                "Cursor-based pagination is not enabled for this endpoint. "
                'Use "page" parameter instead.'
            )
            raise PaginationModeException(msg, parameter=CURSOR_PARAM, use_parameter=PAGE_PARAM)
        if parsed.mode is PaginationMode.OFFSET and not policy.allows_offset:
            msg = (
                "Offset-based pagination is not enabled for this endpoint. "
                'Remove "page" parameter to use cursor pagination.'
            )
            raise PaginationModeException(msg, parameter=PAGE_PARAM, use_parameter=CURSOR_PARAM)

    async def execute_offset(
        self,
        session: AsyncSession,
        statement: Select[Any],
        parsed: ParsedQuery,
    ) -> OffsetPage[Any]:
        page = parsed.page or 1
        offset = parsed.offset if parsed.offset is not None else (page - 1) * parsed.limit

        stmt = FilterSet(parsed.filters).apply(statement)
        stmt = OrderBy(parsed.sorting).apply(stmt)
        stmt = LimitOffset(limit=parsed.limit, offset=offset).apply(stmt)

        result = await session.execute(stmt)
        rows = _rows(result, statement)

        _lazy.debug(
            lambda: (
                f"paginate.offset: page={page} limit={parsed.limit} "
                f"offset={offset} -> {len(rows)} rows"
            )
        )
        return OffsetPage[Any](data=rows, page=page, limit=parsed.limit)

    async def execute_cursor(
        self,
        session: AsyncSession,
        statement: Select[Any],
        parsed: ParsedQuery,
    ) -> CursorPage[Any]:
        limit = parsed.limit
        sorting = ensure_key_sort(parsed.sorting, parsed.policy.cursor_key_column)
        cursor_values = self.codec.decode(parsed.cursor) if parsed.cursor else None

        seek = SeekFilter(sorting, cursor_values, limit=limit)
        stmt = FilterSet(parsed.filters).apply(statement)
        stmt = seek.apply(stmt)

        result = await session.execute(stmt)
        rows = list(result.all())

        has_more = len(rows) > limit
        next_cursor = None
        if has_more:
            rows = rows[:limit]
            field_names = list(zip(seek.sort_fields, seek.cursor_labels, strict=True))
            next_cursor = self.codec.encode(extract_cursor_values(rows[-1]._mapping, field_names))

        data = _strip_cursor_columns(rows, statement, seek.cursor_labels)
        _lazy.debug(
            lambda: (
                f"paginate.cursor: limit={limit} "
                f"cursor={'set' if parsed.cursor else 'none'} "
                f"-> {len(data)} rows, has_more={has_more}"
            )
        )
        return CursorPage[Any](data=data, next_cursor=next_cursor)


async def execute_query(
    session: AsyncSession,
    statement: Select[Any],
    parsed: ParsedQuery,
    *,
    codec: CursorCodec | None = None,
) -> OffsetPage[Any] | CursorPage[Any]:
    """Shortcut for ``PaginationExecutor(codec).execute(...)``."""
    return await PaginationExecutor(codec).execute(session, statement, parsed)


__all__ = ["PaginationExecutor", "execute_query", "selects_single_entity"]
