"""Statement filters that apply parsed instructions to a SQLAlchemy select.

Like the rest of the engine these work directly on SQLAlchemy statements
without hiding the query; each filter's ``apply()`` returns a new statement.

Usage:
    stmt = select(Item)
    stmt = FilterSet(parsed.filters).apply(stmt)
    stmt = OrderBy(parsed.sorting).apply(stmt)
    stmt = LimitOffset(limit=parsed.limit, offset=parsed.offset).apply(stmt)

The seek (keyset) method replaces OFFSET in cursor mode. For
``ORDER BY created_at DESC, id ASC`` with a cursor at ``(t1, id1)``:

    WHERE (created_at < t1) OR (created_at = t1 AND id > id1)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import Select, and_, or_
from sqlalchemy.sql.elements import ColumnElement

from listquery.core.exceptions import InvalidCursorException
from listquery.core.pagination.coercion import coerce_value, column_python_type
from listquery.core.pagination.columns import column_key, same_column
from listquery.core.pagination.constants import FilterOperator, SortOrder
from listquery.core.pagination.parser import FilterInstruction, SortInstruction

# Prefix of the extra result columns carrying sort values in cursor mode
CURSOR_LABEL_PREFIX = "_cursor_"


def sort_field_name(sort: SortInstruction) -> str:
    """Key of a sort level inside cursor tokens."""
    return sort.field_name or column_key(sort.column)


def apply_filter_operator(column: Any, operator: FilterOperator, value: Any) -> ColumnElement[bool]:
    """Build ``column <operator> value``.

    ``like`` is a case-insensitive substring match; ``%`` and ``_`` in the
    value match literally.
    """
    if operator is FilterOperator.EQ:
        return column == value
    if operator is FilterOperator.GT:
        return column > value
    if operator is FilterOperator.LT:
        return column < value
    if operator is FilterOperator.GTE:
        return column >= value
    if operator is FilterOperator.LTE:
        return column <= value
    if operator is FilterOperator.LIKE:
        return column.icontains(str(value), autoescape=True)
    msg = f"Unsupported filter operator: {operator!r}"
    raise ValueError(msg)


class StatementFilter(ABC):
    """Base class for statement filters.

    All filters implement `apply()` which modifies a SQLAlchemy statement.
    """

    @abstractmethod
    def apply(self, statement: Select[Any]) -> Select[Any]:
        """Apply filter to statement.

        Args:
            statement: SQLAlchemy select statement

        Returns:
            Modified select statement
        """
        ...


class FilterSet(StatementFilter):
    """AND together resolved filter instructions.

    Example:
        stmt = FilterSet(parsed.filters).apply(select(Item))
        # WHERE item.price >= :p1 AND lower(item.name) LIKE '%' || lower(:p2) || '%'
    """

    def __init__(self, filters: Sequence[FilterInstruction]):
        self.filters = list(filters)

    def apply(self, statement: Select[Any]) -> Select[Any]:
        if not self.filters:
            return statement
        conditions = [
            apply_filter_operator(item.column, item.operator, item.value) for item in self.filters
        ]
        return statement.where(and_(*conditions))


class OrderBy(StatementFilter):
    """Column ordering from sort instructions.

    Example:
        stmt = OrderBy(parsed.sorting).apply(stmt)
    """

    def __init__(self, sorting: Sequence[SortInstruction]):
        self.sorting = list(sorting)

    def apply(self, statement: Select[Any]) -> Select[Any]:
        """Apply ordering to statement."""
        for sort in self.sorting:
            if sort.order is SortOrder.DESC:
                statement = statement.order_by(sort.column.desc())
            else:
                statement = statement.order_by(sort.column.asc())
        return statement


class LimitOffset(StatementFilter):
    """Pagination using LIMIT and OFFSET.

    Example:
        # Page 2 with 50 items per page
        stmt = LimitOffset(limit=50, offset=50).apply(stmt)
    """

    def __init__(self, limit: int, offset: int = 0):
        self.limit = limit
        self.offset = offset

    def apply(self, statement: Select[Any]) -> Select[Any]:
        """Apply pagination to statement."""
        return statement.limit(self.limit).offset(self.offset)


def ensure_key_sort(
    sorting: Sequence[SortInstruction],
    key_column: Any,
) -> list[SortInstruction]:
    """Append ``key_column`` ascending unless a sort level already uses it.

    The key column makes the ordering total, so no two rows share a position
    and the seek predicate never skips or repeats rows. Levels are matched by
    column identity, not by name: sorting by ``Category.id`` does not stand in
    for a ``Product.id`` key.
    """
    result = list(sorting)
    if any(same_column(sort.column, key_column) for sort in result):
        return result
    result.append(SortInstruction(column=key_column, field_name="", order=SortOrder.ASC))
    return result


def _cursor_value(sort: SortInstruction, cursor_values: Mapping[str, Any]) -> Any:
    name = sort_field_name(sort)
    if name not in cursor_values:
        msg = "Invalid cursor: cursor does not match current sort"
        raise InvalidCursorException(msg)

    target = sort.value_type or column_python_type(sort.column)
    try:
        return coerce_value(cursor_values[name], target)
    except (TypeError, ValueError) as e:
        msg = f"Invalid cursor: bad value for '{name}'"
        raise InvalidCursorException(msg) from e


def build_seek_predicate(
    sorting: Sequence[SortInstruction],
    cursor_values: Mapping[str, Any],
    key_column: Any = None,
) -> ColumnElement[bool] | None:
    """Build the keyset predicate selecting rows strictly after a cursor.

    For sort levels (a, b, c) with cursor values (v1, v2, v3):
        (a op v1) OR
        (a = v1 AND b op v2) OR
        (a = v1 AND b = v2 AND c op v3)

    where ``op`` is ``>`` for ASC and ``<`` for DESC.

    Args:
        sorting: Sort levels.
        cursor_values: Decoded cursor payload keyed by sort field name.
        key_column: Unique tie-breaker; appended to ``sorting`` when missing.

    Returns:
        The predicate, or ``None`` when there are no sort levels.

    Raises:
        InvalidCursorException: If a sort field is missing from the cursor
            or its value cannot be converted to the column type.
    """
    if key_column is not None:
        sorting = ensure_key_sort(sorting, key_column)
    values = [_cursor_value(sort, cursor_values) for sort in sorting]

    or_conditions = []
    for i, sort in enumerate(sorting):
        eq_conditions = [sorting[j].column == values[j] for j in range(i)]
        if sort.order is SortOrder.DESC:
            compare_cond = sort.column < values[i]
        else:
            compare_cond = sort.column > values[i]

        if eq_conditions:
            or_conditions.append(and_(*eq_conditions, compare_cond))
        else:
            or_conditions.append(compare_cond)

    if not or_conditions:
        return None
    return or_(*or_conditions)


class SeekFilter(StatementFilter):
    """Apply the cursor seek predicate, ordering and ``limit + 1`` fetch.

    The extra row tells the caller whether another page exists without a
    separate COUNT query. Every sort expression is also selected under its
    own label (``cursor_labels``) so the next cursor is read from the sorted
    expression itself, whatever table it belongs to and whatever the
    statement selects.

    Example:
        stmt = SeekFilter(
            sorting=ensure_key_sort(parsed.sorting, Item.id),
            cursor_values=codec.decode(parsed.cursor),
            limit=parsed.limit,
        ).apply(select(Item))
    """

    def __init__(
        self,
        sorting: Sequence[SortInstruction],
        cursor_values: Mapping[str, Any] | None,
        *,
        limit: int,
    ) -> None:
        self.sorting = list(sorting)
        self.cursor_values = cursor_values
        self.limit = limit

    def apply(self, statement: Select[Any]) -> Select[Any]:
        if self.cursor_values is not None:
            predicate = build_seek_predicate(self.sorting, self.cursor_values)
            if predicate is not None:
                statement = statement.where(predicate)

        statement = statement.add_columns(
            *(sort.column.label(label) for sort, label in zip(self.sorting, self.cursor_labels))
        )
        statement = OrderBy(self.sorting).apply(statement)
        return statement.limit(self.limit + 1)

    @property
    def sort_fields(self) -> list[str]:
        """Cursor keys of the sort levels."""
        return [sort_field_name(sort) for sort in self.sorting]

    @property
    def cursor_labels(self) -> list[str]:
        """Result labels holding each sort level's value."""
        return [f"{CURSOR_LABEL_PREFIX}{index}" for index in range(len(self.sorting))]


__all__ = [
    "CURSOR_LABEL_PREFIX",
    "FilterSet",
    "LimitOffset",
    "OrderBy",
    "SeekFilter",
    "StatementFilter",
    "apply_filter_operator",
    "build_seek_predicate",
    "column_key",
    "ensure_key_sort",
    "sort_field_name",
]
