"""Declarative filtering, sorting and pagination for list endpoints.

Declare a query shape once at startup:
    items = QueryShape(
        name="items",
        policy=PaginationPolicy(mode="both", default_limit=20, cursor_key_column=Item.id),
        fields=(
            field_spec("name", Item.name, filters=("eq", "like"), sortable=True),
            field_spec("price", Item.price, filters=("gte", "lte"), sortable=True),
        ),
    )

Parse and execute per request:
    parsed = items.parse(request.query_params)
    page = await PaginationExecutor().execute(session, select(Item), parsed)

Offset pages look like ``{"data": [...], "page": 1, "limit": 20}``; cursor
pages like ``{"data": [...], "nextCursor": "eyJpZCI6MjB9"}``. A ``both``
shape uses offset pagination when ``page`` is sent and cursor pagination
otherwise.
"""

from listquery.core.pagination.constants import FilterOperator, PaginationMode, SortOrder
from listquery.core.pagination.cursor import (
    CursorCodec,
    JSONCursorCodec,
    SignedCursorCodec,
    extract_cursor_values,
    get_cursor_codec,
)
from listquery.core.pagination.executor import PaginationExecutor, execute_query
from listquery.core.pagination.filters import (
    FilterSet,
    LimitOffset,
    OrderBy,
    SeekFilter,
    StatementFilter,
    build_seek_predicate,
    ensure_key_sort,
)
from listquery.core.pagination.introspect import (
    ShapeDescription,
    describe_shape,
    format_shape_summary,
    log_shape_summary,
)
from listquery.core.pagination.parser import (
    FilterInstruction,
    ParsedQuery,
    SortInstruction,
    parse_query,
)
from listquery.core.pagination.registry import (
    FieldSpec,
    FilterSpec,
    PaginationPolicy,
    QueryShape,
    QueryShapeRegistry,
    SortSpec,
    field_spec,
)
from listquery.core.pagination.schemas import CursorPage, OffsetPage

__all__ = [
    "CursorCodec",
    "CursorPage",
    "FieldSpec",
    "FilterInstruction",
    "FilterOperator",
    "FilterSet",
    "FilterSpec",
    "JSONCursorCodec",
    "LimitOffset",
    "OffsetPage",
    "OrderBy",
    "PaginationExecutor",
    "PaginationMode",
    "PaginationPolicy",
    "ParsedQuery",
    "QueryShape",
    "QueryShapeRegistry",
    "SeekFilter",
    "ShapeDescription",
    "SignedCursorCodec",
    "SortInstruction",
    "SortOrder",
    "SortSpec",
    "StatementFilter",
    "build_seek_predicate",
    "describe_shape",
    "ensure_key_sort",
    "execute_query",
    "extract_cursor_values",
    "field_spec",
    "format_shape_summary",
    "get_cursor_codec",
    "log_shape_summary",
    "parse_query",
]
