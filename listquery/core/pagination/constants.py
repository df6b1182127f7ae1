"""Enumerations and query-string parameter names used by the engine."""

from __future__ import annotations

from enum import Enum


class PaginationMode(str, Enum):
    """Pagination styles a query shape can allow."""

    OFFSET = "offset"
    CURSOR = "cursor"
    BOTH = "both"


class SortOrder(str, Enum):
    """Sort direction of a single sort level."""

    ASC = "ASC"
    DESC = "DESC"

    @classmethod
    def parse(cls, value: str) -> SortOrder:
        """Parse a case-insensitive order token.

        Raises:
            ValueError: If the token is neither ASC nor DESC.
        """
        return cls(value.strip().upper())


class FilterOperator(str, Enum):
    """Comparison applied by a filter instruction."""

    EQ = "eq"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    LIKE = "like"


# Shorthand accepted by ``field_spec(filters=...)`` -> (operator, alias suffix)
FILTER_OPERATOR_CONFIG: dict[str, tuple[FilterOperator, str]] = {
    "eq": (FilterOperator.EQ, ""),
    "equal": (FilterOperator.EQ, ""),
    "like": (FilterOperator.LIKE, "Like"),
    "gt": (FilterOperator.GT, "Gt"),
    "gte": (FilterOperator.GTE, "Gte"),
    "lt": (FilterOperator.LT, "Lt"),
    "lte": (FilterOperator.LTE, "Lte"),
}

PAGE_PARAM = "page"
CURSOR_PARAM = "cursor"
LIMIT_PARAM = "limit"
SORT_BY_PARAM = "sortBy"
SORT_ORDER_PARAM = "sortOrder"

RESERVED_PARAMS = frozenset(
    {PAGE_PARAM, CURSOR_PARAM, LIMIT_PARAM, SORT_BY_PARAM, SORT_ORDER_PARAM}
)


__all__ = [
    "CURSOR_PARAM",
    "FILTER_OPERATOR_CONFIG",
    "LIMIT_PARAM",
    "PAGE_PARAM",
    "RESERVED_PARAMS",
    "SORT_BY_PARAM",
    "SORT_ORDER_PARAM",
    "FilterOperator",
    "PaginationMode",
    "SortOrder",
]
