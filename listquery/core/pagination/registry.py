"""Declarative metadata for paginated list queries.

A *query shape* is the list-query contract of one endpoint: which fields a
client can filter on (and with which operators), which fields it can sort by,
and how the result is paginated. Shapes are plain frozen dataclasses built
once at startup and only read afterwards, so request handlers share them
without locking.

Example:
    from sqlalchemy import select

    items = QueryShape(
        name="items",
        policy=PaginationPolicy(
            mode="both",
            default_limit=20,
            max_limit=100,
            default_sort=[SortSpec(Item.created_at, "DESC")],
            cursor_key_column=Item.id,
        ),
        fields=(
            field_spec("id", Item.id, filters=("eq", "gt", "lt"), sortable=True),
            field_spec("name", Item.name, filters=("eq", "like"), sortable=True),
            field_spec("createdAt", Item.created_at, sortable=True, sort_alias="created"),
        ),
    )

    parsed = items.parse({"nameLike": "lamp", "sortBy": "created", "sortOrder": "desc"})

Invalid declarations raise ``PaginationConfigError`` immediately, so a
misconfigured endpoint fails at import time instead of on its first request.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from listquery.core.exceptions import PaginationConfigError
from listquery.core.pagination.coercion import column_python_type
from listquery.core.pagination.columns import column_key, has_column_key, same_column
from listquery.core.pagination.constants import (
    FILTER_OPERATOR_CONFIG,
    RESERVED_PARAMS,
    FilterOperator,
    PaginationMode,
    SortOrder,
)
from listquery.core.settings import get_pagination_settings

if TYPE_CHECKING:
    from listquery.core.pagination.parser import ParsedQuery, RawParams

logger = logging.getLogger(__name__)


def _as_sort_order(value: SortOrder | str) -> SortOrder:
    try:
        return SortOrder.parse(value) if isinstance(value, str) else SortOrder(value)
    except ValueError as e:
        msg = f"Sort order must be 'ASC' or 'DESC', got {value!r}"
        raise PaginationConfigError(msg) from e


@dataclass(frozen=True, slots=True, eq=False)
class SortSpec:
    """One level of a default sort order.

    Attributes:
        column: Column or expression to order by.
        order: ``ASC`` or ``DESC`` (strings are accepted case-insensitively).
    """

    column: Any
    order: SortOrder = SortOrder.ASC

    def __post_init__(self) -> None:
        if self.column is None:
            msg = "SortSpec requires a column"
            raise PaginationConfigError(msg)
        if not has_column_key(self.column):
            msg = f"Default sort column {self.column!r} has no name; label the expression"
            raise PaginationConfigError(msg)
        object.__setattr__(self, "order", _as_sort_order(self.order))


@dataclass(frozen=True, slots=True, eq=False)
class FilterSpec:
    """A filter operator exposed under a public query-string alias.

    Attributes:
        operator: Comparison to apply.
        alias: Query parameter name clients use for this operator.
        default: Value applied when the client omits the parameter
            (``None`` means no default).
    """

    operator: FilterOperator
    alias: str
    default: Any = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "operator", FilterOperator(self.operator))
        except ValueError as e:
            valid = ", ".join(op.value for op in FilterOperator)
            msg = f"Invalid filter operator {self.operator!r}. Valid operators are: {valid}"
            raise PaginationConfigError(msg) from e
        if not self.alias:
            msg = "FilterSpec requires a non-empty alias"
            raise PaginationConfigError(msg, {"operator": self.operator.value})
        if self.alias in RESERVED_PARAMS:
            msg = f"Filter alias {self.alias!r} collides with a pagination parameter"
            raise PaginationConfigError(msg, {"reserved": sorted(RESERVED_PARAMS)})


@dataclass(frozen=True, slots=True, eq=False)
class FieldSpec:
    """A declared field of a query shape.

    Attributes:
        name: Internal field name; also the key used for this field's value
            inside cursor tokens.
        column: Column or expression the field binds to.
        filters: Filter operators available on the field.
        sortable: Whether clients may sort by the field.
        sort_alias: Public name used in ``sortBy`` (defaults to ``name``).
        value_type: Python type filter values are converted to. Inferred from
            the column type when omitted.
    """

    name: str
    column: Any
    filters: tuple[FilterSpec, ...] = ()
    sortable: bool = False
    sort_alias: str = ""
    value_type: type | None = None

    def __post_init__(self) -> None:
        if not self.name:
            msg = "FieldSpec requires a non-empty name"
            raise PaginationConfigError(msg)
        if self.column is None:
            msg = f"Field {self.name!r} has no column"
            raise PaginationConfigError(msg)
        if not self.sort_alias:
            object.__setattr__(self, "sort_alias", self.name)
        object.__setattr__(self, "filters", tuple(self.filters))

        seen: set[str] = set()
        for spec in self.filters:
            if spec.alias in seen:
                msg = f"Field {self.name!r} declares filter alias {spec.alias!r} more than once"
                raise PaginationConfigError(msg, {"field": self.name, "alias": spec.alias})
            seen.add(spec.alias)

    @property
    def filter_aliases(self) -> list[str]:
        return [spec.alias for spec in self.filters]

    @property
    def python_type(self) -> type | None:
        """Type filter and cursor values are coerced to."""
        if self.value_type is not None:
            return self.value_type
        return column_python_type(self.column)


def field_spec(
    name: str,
    column: Any,
    *,
    filters: Iterable[str | FilterSpec] = (),
    sortable: bool = False,
    sort_alias: str | None = None,
    value_type: type | None = None,
    defaults: Mapping[str, Any] | None = None,
) -> FieldSpec:
    """Build a ``FieldSpec`` from operator shorthands.

    Shorthand operators derive their public alias from the field name:
    ``eq`` -> ``name``, ``like`` -> ``nameLike``, ``gt`` -> ``nameGt``,
    ``gte`` -> ``nameGte``, ``lt`` -> ``nameLt``, ``lte`` -> ``nameLte``.
    Pass a ``FilterSpec`` instead of a string to choose the alias yourself.

    Args:
        name: Field name.
        column: Column or expression the field binds to.
        filters: Operator shorthands and/or explicit ``FilterSpec`` objects.
        sortable: Whether clients may sort by the field.
        sort_alias: Public ``sortBy`` name (defaults to ``name``).
        value_type: Explicit Python type for filter values.
        defaults: Default filter values keyed by shorthand operator
            (e.g. ``{"eq": "active"}``).

    Raises:
        PaginationConfigError: On an unknown shorthand operator.
    """
    defaults = defaults or {}
    specs: list[FilterSpec] = []
    for item in filters:
        if isinstance(item, FilterSpec):
            specs.append(item)
            continue
        key = item.lower()
        config = FILTER_OPERATOR_CONFIG.get(key)
        if config is None:
            valid = ", ".join(FILTER_OPERATOR_CONFIG)
            msg = f"Invalid filter operator '{item}'. Valid operators are: {valid}"
            raise PaginationConfigError(msg, {"field": name})
        operator, suffix = config
        specs.append(
            FilterSpec(
                operator=operator,
                alias=f"{name}{suffix}",
                default=defaults.get(key, defaults.get(operator.value)),
            )
        )

    return FieldSpec(
        name=name,
        column=column,
        filters=tuple(specs),
        sortable=sortable,
        sort_alias=sort_alias or name,
        value_type=value_type,
    )


@dataclass(frozen=True, slots=True, eq=False)
class PaginationPolicy:
    """Pagination rules of a query shape.

    Any option left as ``None`` is filled from ``PaginationSettings``.

    Attributes:
        mode: ``offset``, ``cursor`` or ``both``.
        default_limit: Page size when the client sends no ``limit``.
        max_limit: Largest ``limit`` a client may request.
        allow_custom_limit: Whether the client may send ``limit``.
        allow_custom_sort: Whether the client may send ``sortBy``.
        allow_multiple_sort: Whether ``sortBy`` may name several fields.
        default_sort: Sort order used when the client sends none.
        cursor_key_column: Unique column used as the final tie-breaker in
            cursor mode. Required for ``cursor`` and ``both``.
    """

    mode: PaginationMode | str | None = None
    default_limit: int | None = None
    max_limit: int | None = None
    allow_custom_limit: bool | None = None
    allow_custom_sort: bool | None = None
    allow_multiple_sort: bool | None = None
    default_sort: Sequence[SortSpec] = ()
    cursor_key_column: Any = None

    def __post_init__(self) -> None:
        settings = get_pagination_settings()

        raw_mode = self.mode if self.mode is not None else settings.default_mode
        try:
            mode = PaginationMode(raw_mode.lower() if isinstance(raw_mode, str) else raw_mode)
        except ValueError as e:
            msg = f"paginationType must be 'offset', 'cursor', or 'both', got {raw_mode!r}"
            raise PaginationConfigError(msg) from e
        object.__setattr__(self, "mode", mode)

        for name in ("allow_custom_limit", "allow_custom_sort", "allow_multiple_sort"):
            if getattr(self, name) is None:
                object.__setattr__(self, name, getattr(settings, name))

        max_limit = self.max_limit if self.max_limit is not None else settings.max_limit
        default_limit = (
            self.default_limit
            if self.default_limit is not None
            else min(settings.default_limit, max_limit)
        )
        if max_limit <= 0:
            msg = f"maxLimit must be greater than 0, got {max_limit}"
            raise PaginationConfigError(msg)
        if default_limit <= 0:
            msg = f"limit must be greater than 0, got {default_limit}"
            raise PaginationConfigError(msg)
        if default_limit > max_limit:
            msg = f"limit ({default_limit}) cannot be greater than maxLimit ({max_limit})"
            raise PaginationConfigError(msg)
        object.__setattr__(self, "max_limit", max_limit)
        object.__setattr__(self, "default_limit", default_limit)

        sorts = tuple(
            spec if isinstance(spec, SortSpec) else SortSpec(*spec)
            for spec in self.default_sort
        )
        object.__setattr__(self, "default_sort", sorts)

        if mode is not PaginationMode.OFFSET and self.cursor_key_column is None:
            msg = f"cursorIdField is required when paginationType is '{mode.value}'"
            raise PaginationConfigError(msg, {"mode": mode.value})
        self._check_cursor_keys()

    def _check_cursor_keys(self) -> None:
        """Default sort levels and the key column must have distinct cursor keys."""
        if self.cursor_key_column is not None and not has_column_key(self.cursor_key_column):
            msg = (
                f"cursor_key_column {self.cursor_key_column!r} has no name; "
                "use a column or a labeled expression"
            )
            raise PaginationConfigError(msg)

        columns = [sort.column for sort in self.default_sort]
        if self.cursor_key_column is not None:
            columns.append(self.cursor_key_column)
        seen: dict[str, Any] = {}
        for column in columns:
            key = column_key(column)
            other = seen.setdefault(key, column)
            if other is not column and not same_column(other, column):
                msg = f"Default sort columns {other!r} and {column!r} share the cursor key {key!r}"
                raise PaginationConfigError(msg, {"key": key})

    @property
    def allows_offset(self) -> bool:
        return self.mode in (PaginationMode.OFFSET, PaginationMode.BOTH)

    @property
    def allows_cursor(self) -> bool:
        return self.mode in (PaginationMode.CURSOR, PaginationMode.BOTH)


@dataclass(frozen=True, slots=True, eq=False)
class QueryShape:
    """Named list-query contract: pagination policy plus declared fields."""

    name: str
    policy: PaginationPolicy
    fields: tuple[FieldSpec, ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            msg = "QueryShape requires a non-empty name"
            raise PaginationConfigError(msg)
        object.__setattr__(self, "fields", tuple(self.fields))

        names: set[str] = set()
        sort_aliases: dict[str, str] = {}
        for spec in self.fields:
            if spec.name in names:
                msg = f"Field {spec.name!r} is declared more than once"
                raise PaginationConfigError(msg, {"shape": self.name})
            names.add(spec.name)

            if not spec.sortable:
                continue
            owner = sort_aliases.get(spec.sort_alias)
            if owner is not None:
                msg = (
                    f"Sort alias {spec.sort_alias!r} of field {spec.name!r} "
                    f"collides with field {owner!r}"
                )
                raise PaginationConfigError(msg, {"shape": self.name})
            sort_aliases[spec.sort_alias] = spec.name
            self._check_key_collision(spec)

    def _check_key_collision(self, spec: FieldSpec) -> None:
        """A sortable field must not reuse the key column's cursor key for another column."""
        key_column = self.policy.cursor_key_column
        if key_column is None or spec.name != column_key(key_column):
            return
        if not same_column(spec.column, key_column):
            msg = (
                f"Sortable field {spec.name!r} shares its cursor key with "
                f"cursor_key_column {key_column!r}; rename the field"
            )
            raise PaginationConfigError(msg, {"shape": self.name, "field": spec.name})

    @property
    def sortable_aliases(self) -> list[str]:
        return [spec.sort_alias for spec in self.fields if spec.sortable]

    @property
    def filter_aliases(self) -> list[str]:
        return [alias for spec in self.fields for alias in spec.filter_aliases]

    def sortable_field(self, alias: str) -> FieldSpec | None:
        """Return the sortable field published under ``alias``."""
        for spec in self.fields:
            if spec.sortable and spec.sort_alias == alias:
                return spec
        return None

    def parse(self, params: RawParams) -> ParsedQuery:
        """Parse raw query parameters against this shape."""
        from listquery.core.pagination.parser import parse_query

        return parse_query(self.policy, self.fields, params)


class QueryShapeRegistry:
    """Lookup table of query shapes by name.

    Shapes are registered during startup; afterwards the registry is only
    read.

    Example:
        registry = QueryShapeRegistry()
        registry.register(items_shape)
        parsed = registry.get("items").parse(request_params)
    """

    __slots__ = ("_shapes",)

    def __init__(self, shapes: Iterable[QueryShape] = ()) -> None:
        self._shapes: dict[str, QueryShape] = {}
        for shape in shapes:
            self.register(shape)

    def register(self, shape: QueryShape) -> QueryShape:
        """Add a shape.

        Raises:
            PaginationConfigError: If a shape with the same name exists.
        """
        if shape.name in self._shapes:
            msg = f"Query shape {shape.name!r} is already registered"
            raise PaginationConfigError(msg)
        self._shapes[shape.name] = shape
        logger.info(
            "Query shape registered",
            extra={
                "shape": shape.name,
                "mode": shape.policy.mode.value,
                "fields": len(shape.fields),
            },
        )
        return shape

    def define(
        self,
        name: str,
        policy: PaginationPolicy,
        *fields: FieldSpec,
    ) -> QueryShape:
        """Build and register a shape in one call."""
        return self.register(QueryShape(name=name, policy=policy, fields=fields))

    def get(self, name: str) -> QueryShape:
        """Return the shape registered under ``name``.

        Raises:
            PaginationConfigError: If no such shape exists.
        """
        try:
            return self._shapes[name]
        except KeyError:
            msg = f"Unknown query shape {name!r}"
            raise PaginationConfigError(msg, {"registered": sorted(self._shapes)}) from None

    def names(self) -> list[str]:
        return list(self._shapes)

    def __contains__(self, name: object) -> bool:
        return name in self._shapes

    def __iter__(self) -> Iterator[QueryShape]:
        return iter(self._shapes.values())

    def __len__(self) -> int:
        return len(self._shapes)


__all__ = [
    "FieldSpec",
    "FilterSpec",
    "PaginationPolicy",
    "QueryShape",
    "QueryShapeRegistry",
    "SortSpec",
    "field_spec",
]
