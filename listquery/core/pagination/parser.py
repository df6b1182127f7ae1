"""Turn raw query-string parameters into validated query instructions.

``parse_query`` is a pure function of a pagination policy, the declared
fields and the raw parameters. It never touches the database; everything it
returns is ready to be applied by ``PaginationExecutor``.

Resolution rules:

- **Mode**: an ``offset`` shape rejects ``cursor``; a ``cursor`` shape rejects
  ``page``; a ``both`` shape uses offset pagination when ``page`` is present
  and cursor pagination otherwise. A client that sends neither therefore gets
  cursor pagination on a ``both`` shape, even if it never meant to use
  cursors.
- **Filters**: each declared filter alias is read from the parameters,
  falling back to the filter's default; missing or empty values are dropped.
- **Sorting**: ``sortBy``/``sortOrder`` are parallel comma-separated lists;
  without them (or when custom sorting is disabled) the policy's default
  sort applies.
- **Limit**: must be a positive integer no larger than ``max_limit``. Larger
  values are rejected, never clamped.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from listquery.core.exceptions import InvalidQueryParameterException, PaginationModeException
from listquery.core.pagination.coercion import coerce_value
from listquery.core.pagination.constants import (
    CURSOR_PARAM,
    LIMIT_PARAM,
    PAGE_PARAM,
    SORT_BY_PARAM,
    SORT_ORDER_PARAM,
    FilterOperator,
    PaginationMode,
    SortOrder,
)
from listquery.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from listquery.core.pagination.registry import FieldSpec, PaginationPolicy

RawParams = Mapping[str, "str | Sequence[str] | None"]

logger = get_lazy_logger(__name__)


@dataclass(frozen=True, slots=True, eq=False)
class FilterInstruction:
    """A resolved filter: ``column <operator> value``."""

    field_name: str
    column: Any
    operator: FilterOperator
    value: Any


@dataclass(frozen=True, slots=True, eq=False)
class SortInstruction:
    """A resolved sort level.

    ``field_name`` is empty for levels that come from the policy's default
    sort, since those reference columns rather than declared fields.
    ``value_type`` is the type cursor values are converted back to; the
    column type is used when it is ``None``.
    """

    column: Any
    field_name: str
    order: SortOrder
    value_type: type | None = None


@dataclass(frozen=True, slots=True, eq=False)
class ParsedQuery:
    """Instructions for one list request.

    Exactly one of ``page``/``offset`` (offset mode) or ``cursor`` (cursor
    mode) is meaningful; ``cursor`` is ``None`` on the first cursor page.
    """

    filters: tuple[FilterInstruction, ...]
    sorting: tuple[SortInstruction, ...]
    limit: int
    mode: PaginationMode
    policy: PaginationPolicy
    page: int | None = None
    offset: int | None = None
    cursor: str | None = None

    @property
    def is_cursor(self) -> bool:
        return self.mode is PaginationMode.CURSOR

    @property
    def is_offset(self) -> bool:
        return self.mode is PaginationMode.OFFSET


def _single(params: RawParams, key: str) -> str | None:
    """Return a single-valued parameter; the last value wins for repeats."""
    value = params.get(key)
    if value is None or isinstance(value, str):
        return value
    values = [item for item in value if item is not None]
    return values[-1] if values else None


def _multi(params: RawParams, key: str) -> list[str]:
    """Return a comma-separated parameter as a list of trimmed, non-empty items."""
    value = params.get(key)
    if value is None:
        return []
    chunks = [value] if isinstance(value, str) else [item for item in value if item is not None]
    return [part.strip() for chunk in chunks for part in chunk.split(",") if part.strip()]


def _resolve_mode(policy: PaginationPolicy, params: RawParams) -> PaginationMode:
    page = _single(params, PAGE_PARAM)
    cursor = _single(params, CURSOR_PARAM)

    if policy.mode is PaginationMode.OFFSET:
        if cursor:
            msg = (
                "Cursor-based pagination is not enabled for this endpoint. "
                'Use "page" parameter instead.'
            )
            raise PaginationModeException(msg, parameter=CURSOR_PARAM, use_parameter=PAGE_PARAM)
        return PaginationMode.OFFSET

    if policy.mode is PaginationMode.CURSOR:
        if page:
            msg = (
                "Offset-based pagination is not enabled for this endpoint. "
                'Remove "page" parameter to use cursor pagination.'
            )
            raise PaginationModeException(msg, parameter=PAGE_PARAM, use_parameter=CURSOR_PARAM)
        return PaginationMode.CURSOR

    return PaginationMode.OFFSET if page else PaginationMode.CURSOR


def parse_filters(fields: Sequence[FieldSpec], params: RawParams) -> list[FilterInstruction]:
    """Resolve every declared filter alias against the parameters."""
    filters: list[FilterInstruction] = []

    for spec in fields:
        for filter_spec in spec.filters:
            value: Any = _single(params, filter_spec.alias)
            if value is None and filter_spec.default is not None:
                value = filter_spec.default

            if value is None or value == "":
                continue

            if filter_spec.operator is FilterOperator.LIKE:
                value = str(value)
            else:
                try:
                    value = coerce_value(value, spec.python_type)
                except (TypeError, ValueError) as e:
                    msg = f"Invalid value {value!r} for filter '{filter_spec.alias}': {e}"
                    raise InvalidQueryParameterException(filter_spec.alias, msg) from e

            filters.append(
                FilterInstruction(
                    field_name=spec.name,
                    column=spec.column,
                    operator=filter_spec.operator,
                    value=value,
                )
            )

    return filters


def default_sorting(policy: PaginationPolicy) -> list[SortInstruction]:
    """Map the policy's default sort to sort instructions."""
    return [
        SortInstruction(column=sort.column, field_name="", order=sort.order)
        for sort in policy.default_sort
    ]


def parse_sorting(
    policy: PaginationPolicy,
    fields: Sequence[FieldSpec],
    params: RawParams,
) -> list[SortInstruction]:
    """Resolve ``sortBy``/``sortOrder`` into sort instructions."""
    sort_by = _multi(params, SORT_BY_PARAM)
    if not policy.allow_custom_sort or not sort_by:
        return default_sorting(policy)

    sort_orders = _multi(params, SORT_ORDER_PARAM)

    if not policy.allow_multiple_sort and len(sort_by) > 1:
        msg = (
            f"Multiple sort fields are not allowed. Received {len(sort_by)} fields: "
            f"{', '.join(sort_by)}. Only single field sorting is permitted."
        )
        raise InvalidQueryParameterException(SORT_BY_PARAM, msg, extra={"received": sort_by})

    by_alias = {spec.sort_alias: spec for spec in fields if spec.sortable}
    available = list(by_alias)

    sorting: list[SortInstruction] = []
    for index, alias in enumerate(sort_by):
        spec = by_alias.get(alias)
        if spec is None:
            msg = (
                f"'{alias}' is not a valid sortable field. "
                f"Available sortable fields: {', '.join(available)}"
            )
            raise InvalidQueryParameterException(SORT_BY_PARAM, msg, allowed=available)

        token = sort_orders[index] if index < len(sort_orders) else SortOrder.ASC.value
        try:
            order = SortOrder.parse(token)
        except ValueError as e:
            msg = f"Invalid sort order '{token}' for field '{alias}'. Must be 'ASC' or 'DESC'"
            raise InvalidQueryParameterException(
                SORT_ORDER_PARAM,
                msg,
                allowed=[SortOrder.ASC.value, SortOrder.DESC.value],
            ) from e

        sorting.append(SortInstruction(
                column=spec.column,
                field_name=spec.name,
                order=order,
                value_type=spec.value_type,
            ))

    return sorting or default_sorting(policy)


def parse_limit(policy: PaginationPolicy, params: RawParams) -> int:
    """Resolve the page size."""
    raw = _single(params, LIMIT_PARAM)
    if not policy.allow_custom_limit or not raw:
        return policy.default_limit

    try:
        limit = int(raw)
    except ValueError:
        limit = 0

    if limit <= 0:
        msg = f"Invalid limit value: '{raw}'. Limit must be a positive integer"
        raise InvalidQueryParameterException(LIMIT_PARAM, msg)

    if limit > policy.max_limit:
        msg = f"Limit value {limit} exceeds maximum allowed limit of {policy.max_limit}"
        raise InvalidQueryParameterException(
            LIMIT_PARAM, msg, extra={"max_limit": policy.max_limit}
        )

    return limit


def parse_page(params: RawParams) -> int:
    """Resolve the 1-based page number; absent or non-numeric means page 1."""
    raw = _single(params, PAGE_PARAM)
    if not raw:
        return 1
    try:
        page = int(raw)
    except ValueError:
        return 1
    if page < 1:
        msg = f"Invalid page value: '{raw}'. Page must be 1 or greater"
        raise InvalidQueryParameterException(PAGE_PARAM, msg)
    return page


def parse_query(
    policy: PaginationPolicy,
    fields: Sequence[FieldSpec],
    params: RawParams,
) -> ParsedQuery:
    """Parse raw parameters into a ``ParsedQuery``.

    Args:
        policy: Pagination policy of the query shape.
        fields: Declared fields of the query shape.
        params: Raw parameters; each value is a string or a list of strings.

    Returns:
        Fully validated instructions.

    Raises:
        PaginationModeException: Pagination parameter not allowed by the policy.
        InvalidQueryParameterException: Bad limit, page, sort or filter value.
    """
    mode = _resolve_mode(policy, params)
    filters = parse_filters(fields, params)
    sorting = parse_sorting(policy, fields, params)
    limit = parse_limit(policy, params)

    if mode is PaginationMode.CURSOR:
        parsed = ParsedQuery(
            filters=tuple(filters),
            sorting=tuple(sorting),
            limit=limit,
            mode=mode,
            policy=policy,
            cursor=_single(params, CURSOR_PARAM) or None,
        )
    else:
        page = parse_page(params)
        parsed = ParsedQuery(
            filters=tuple(filters),
            sorting=tuple(sorting),
            limit=limit,
            mode=mode,
            policy=policy,
            page=page,
            offset=(page - 1) * limit,
        )

    logger.debug(lambda: f"Parsed query: {describe_parsed_query(parsed)}")
    return parsed


def describe_parsed_query(parsed: ParsedQuery) -> str:
    """One-line human-readable summary of a parsed query (for logs)."""
    filters = ", ".join(
        f"{item.field_name} {item.operator.value} {item.value!r}" for item in parsed.filters
    )
    sorting = ", ".join(
        f"{item.field_name or '<default>'} {item.order.value}" for item in parsed.sorting
    )
    position = (
        f"cursor={'set' if parsed.cursor else 'none'}"
        if parsed.is_cursor
        else f"page={parsed.page} offset={parsed.offset}"
    )
    return (
        f"mode={parsed.mode.value} limit={parsed.limit} {position} "
        f"filters=[{filters}] sorting=[{sorting}]"
    )


__all__ = [
    "FilterInstruction",
    "ParsedQuery",
    "RawParams",
    "SortInstruction",
    "default_sorting",
    "describe_parsed_query",
    "parse_filters",
    "parse_limit",
    "parse_page",
    "parse_query",
    "parse_sorting",
]
