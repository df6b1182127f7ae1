"""Describe registered query shapes for documentation and debugging.

``describe_shape`` turns a ``QueryShape`` into plain data (policy options,
per-field sortability and filters, every public parameter name and a few
example query strings). ``log_shape_summary`` writes the same information as
a human-readable block to the log, which is handy at startup:

    for shape in registry:
        log_shape_summary(shape)
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

from listquery.core.pagination.columns import column_key
from listquery.core.pagination.constants import (
    CURSOR_PARAM,
    LIMIT_PARAM,
    PAGE_PARAM,
    SORT_BY_PARAM,
    SORT_ORDER_PARAM,
    FilterOperator,
)

if TYPE_CHECKING:
    from listquery.core.pagination.registry import QueryShape

logger = logging.getLogger(__name__)

_EXAMPLE_VALUES = {
    FilterOperator.EQ: "value",
    FilterOperator.LIKE: "search",
    FilterOperator.GT: "10",
    FilterOperator.GTE: "10",
    FilterOperator.LT: "100",
    FilterOperator.LTE: "100",
}

# Filters shown in the per-field and combined examples
_MAX_FILTER_EXAMPLES = 3
_MAX_COMBINED_FILTERS = 2


@dataclass(frozen=True, slots=True)
class FilterDescription:
    operator: str
    alias: str
    default: Any = None


@dataclass(frozen=True, slots=True)
class FieldDescription:
    name: str
    column: str
    sortable: bool
    sort_alias: str | None
    filters: list[FilterDescription] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ShapeDescription:
    """Plain-data view of a query shape.

    Attributes:
        name: Shape name
        policy: Effective pagination options (defaults filled in)
        fields: Per-field sortability and filters, in declaration order
        filter_aliases: Every public filter parameter
        sortable_aliases: Every public ``sortBy`` value
        examples: Example query strings keyed by topic
    """

    name: str
    policy: dict[str, Any]
    fields: list[FieldDescription]
    filter_aliases: list[str]
    sortable_aliases: list[str]
    examples: dict[str, list[str]]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _column_label(column: Any) -> str:
    try:
        return column_key(column)
    except ValueError:
        return str(column)


def example_value(operator: FilterOperator) -> str:
    return _EXAMPLE_VALUES.get(operator, "value")


def _example_queries(shape: QueryShape) -> dict[str, list[str]]:
    policy = shape.policy
    sortable = shape.sortable_aliases
    multi_sort = bool(policy.allow_multiple_sort) and len(sortable) > 1
    examples: dict[str, list[str]] = {}

    pagination = []
    if policy.allows_offset:
        pagination.append(f"?{PAGE_PARAM}=1&{LIMIT_PARAM}=20")
    if policy.allows_cursor:
        pagination.append(f"?{CURSOR_PARAM}=xyz&{LIMIT_PARAM}=20")
    examples["pagination"] = pagination

    if sortable and policy.allow_custom_sort:
        first = sortable[0]
        sorting = [
            f"?{SORT_BY_PARAM}={first}&{SORT_ORDER_PARAM}=ASC",
            f"?{SORT_BY_PARAM}={first}",
        ]
        if multi_sort:
            sorting.append(f"?{SORT_BY_PARAM}={first},{sortable[1]}&{SORT_ORDER_PARAM}=ASC,DESC")
        examples["sorting"] = sorting

    filter_examples = [
        f"?{spec.filters[0].alias}={example_value(spec.filters[0].operator)}"
        for spec in shape.fields
        if spec.filters
    ]
    if filter_examples:
        examples["filtering"] = filter_examples[:_MAX_FILTER_EXAMPLES]

    params = [f"{PAGE_PARAM}=1"] if policy.allows_offset else []
    params.append(f"{LIMIT_PARAM}=20")
    params.extend(item.lstrip("?") for item in filter_examples[:_MAX_COMBINED_FILTERS])
    if sortable and policy.allow_custom_sort:
        if multi_sort:
            params.append(f"{SORT_BY_PARAM}={sortable[0]},{sortable[1]}")
            params.append(f"{SORT_ORDER_PARAM}=ASC,DESC")
        else:
            params.append(f"{SORT_BY_PARAM}={sortable[0]}")
            params.append(f"{SORT_ORDER_PARAM}=DESC")
    examples["combined"] = ["?" + "&".join(params)]

    return examples


def describe_shape(shape: QueryShape) -> ShapeDescription:
    """Collect the public contract of ``shape``."""
    policy = shape.policy
    policy_info = {
        "mode": policy.mode.value,
        "default_limit": policy.default_limit,
        "max_limit": policy.max_limit,
        "allow_custom_limit": policy.allow_custom_limit,
        "allow_custom_sort": policy.allow_custom_sort,
        "allow_multiple_sort": policy.allow_multiple_sort,
        "default_sort": [
            {"column": _column_label(sort.column), "order": sort.order.value}
            for sort in policy.default_sort
        ],
        "cursor_key": (
            _column_label(policy.cursor_key_column)
            if policy.cursor_key_column is not None
            else None
        ),
    }

    fields = [
        FieldDescription(
            name=spec.name,
            column=_column_label(spec.column),
            sortable=spec.sortable,
            sort_alias=spec.sort_alias if spec.sortable else None,
            filters=[
                FilterDescription(item.operator.value, item.alias, item.default)
                for item in spec.filters
            ],
        )
        for spec in shape.fields
    ]

    return ShapeDescription(
        name=shape.name,
        policy=policy_info,
        fields=fields,
        filter_aliases=shape.filter_aliases,
        sortable_aliases=shape.sortable_aliases,
        examples=_example_queries(shape),
    )


def format_shape_summary(description: ShapeDescription) -> str:
    """Render a description as a multi-line text block."""
    policy = description.policy
    lines = [
        f"=== Query shape: {description.name} ===",
        "Pagination options:",
        f"  Mode: {policy['mode']}",
        f"  Default limit: {policy['default_limit']}",
        f"  Max limit: {policy['max_limit']}",
        f"  Allow custom sort: {policy['allow_custom_sort']}",
        f"  Allow custom limit: {policy['allow_custom_limit']}",
        f"  Allow multiple sort: {policy['allow_multiple_sort']}",
    ]
    if policy["cursor_key"]:
        lines.append(f"  Cursor key: {policy['cursor_key']}")
    if policy["default_sort"]:
        lines.append("  Default sort:")
        lines.extend(f"    - {item['column']} {item['order']}" for item in policy["default_sort"])

    lines.append("Fields:")
    for item in description.fields:
        lines.append(f"  {item.name}:")
        if item.sortable:
            note = f" (alias: {item.sort_alias})" if item.sort_alias != item.name else ""
            lines.append(f"    Sortable: yes{note}")
        else:
            lines.append("    Sortable: no")
        if item.filters:
            lines.append("    Filters:")
            for spec in item.filters:
                default = f" (default: {spec.default})" if spec.default is not None else ""
                lines.append(f"      - {spec.operator} -> ?{spec.alias}={default}")

    lines.append("Quick reference:")
    lines.append(f"  Filter params: {', '.join(description.filter_aliases) or '-'}")
    lines.append(f"  Sortable fields: {', '.join(description.sortable_aliases) or '-'}")

    lines.append("Example queries:")
    for topic, queries in description.examples.items():
        lines.append(f"  {topic.capitalize()}:")
        lines.extend(f"    {query}" for query in queries)

    return "\n".join(lines)


def log_shape_summary(shape: QueryShape, log: logging.Logger | None = None) -> ShapeDescription:
    """Log a human-readable summary of ``shape`` at INFO level."""
    description = describe_shape(shape)
    (log or logger).info(
        "Query shape summary\n%s",
        format_shape_summary(description),
        extra={"shape": shape.name},
    )
    return description


__all__ = [
    "FieldDescription",
    "FilterDescription",
    "ShapeDescription",
    "describe_shape",
    "example_value",
    "format_shape_summary",
    "log_shape_summary",
]
