"""Tests for executing parsed queries against SQLite."""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from listquery.core.exceptions import (
    InvalidCursorException,
    PaginationModeException,
)
from listquery.core.pagination import (
    CursorPage,
    JSONCursorCodec,
    OffsetPage,
    PaginationExecutor,
    PaginationPolicy,
    QueryShape,
    SignedCursorCodec,
    execute_query,
    field_spec,
)
from listquery.core.pagination.executor import selects_single_entity
from tests.fixtures.models import (
    Category,
    Item,
    Product,
    items_shape,
    products_shape,
    sorted_items_shape,
)

codec = JSONCursorCodec()


def ids(page) -> list[int]:
    return [row["id"] if isinstance(row, Mapping) else row.id for row in page.data]


async def walk(session: AsyncSession, shape, params: dict, statement=None) -> list[list[int]]:
    """Follow nextCursor until exhausted; return the ids of every page."""
    executor = PaginationExecutor(codec)
    statement = statement if statement is not None else select(Item)
    pages: list[list[int]] = []
    cursor = None
    for _ in range(20):
        request = dict(params)
        if cursor:
            request["cursor"] = cursor
        page = await executor.execute(session, statement, shape.parse(request))
        pages.append(ids(page))
        cursor = page.next_cursor
        if cursor is None:
            return pages
    pytest.fail("cursor walk did not terminate")


@pytest.mark.unit
class TestCursorPagination:
    async def test_walk_with_default_limit(self, seeded_session: AsyncSession):
        shape = items_shape()
        executor = PaginationExecutor(codec)

        first = await executor.execute(seeded_session, select(Item), shape.parse({}))
        assert isinstance(first, CursorPage)
        assert ids(first) == [1, 2]
        assert codec.decode(first.next_cursor) == {"id": 2}

        second = await executor.execute(
            seeded_session, select(Item), shape.parse({"cursor": first.next_cursor})
        )
        assert ids(second) == [3, 4]
        assert codec.decode(second.next_cursor) == {"id": 4}

        third = await executor.execute(
            seeded_session, select(Item), shape.parse({"cursor": second.next_cursor})
        )
        assert ids(third) == [5]
        assert third.next_cursor is None
        assert not third.has_more

    @pytest.mark.parametrize("limit", [1, 2, 5])
    async def test_exhaustion_visits_every_row_once(self, seeded_session: AsyncSession, limit: int):
        pages = await walk(seeded_session, items_shape(), {"limit": str(limit)})

        flat = [item_id for page in pages for item_id in page]
        assert flat == [1, 2, 3, 4, 5]
        assert all(len(page) <= limit for page in pages)

    async def test_exact_fit_has_no_next_cursor(self, seeded_session: AsyncSession):
        page = await PaginationExecutor(codec).execute(
            seeded_session, select(Item), items_shape().parse({"limit": "5"})
        )

        assert ids(page) == [1, 2, 3, 4, 5]
        assert page.next_cursor is None

    async def test_tie_break_on_key_column(self, seeded_session: AsyncSession):
        # Items 2 and 3 share category "furniture"
        pages = await walk(seeded_session, items_shape(), {"sortBy": "category", "limit": "1"})

        flat = [item_id for page in pages for item_id in page]
        assert flat == [2, 3, 1, 5, 4]
        assert sorted(flat) == [1, 2, 3, 4, 5]

    async def test_descending_default_sort_with_ties(self, seeded_session: AsyncSession):
        # created_at DESC; items 2 and 3 share a timestamp, id ASC breaks the tie
        pages = await walk(seeded_session, sorted_items_shape(), {"limit": "2"})

        assert pages == [[5, 4], [2, 3], [1]]

    async def test_cursor_keys_use_field_names(self, seeded_session: AsyncSession):
        page = await PaginationExecutor(codec).execute(
            seeded_session,
            select(Item),
            items_shape().parse({"sortBy": "created", "sortOrder": "DESC", "limit": "1"}),
        )

        assert codec.decode(page.next_cursor) == {"createdAt": "2025-01-04T12:00:00", "id": 5}

    async def test_multi_field_sort_walk(self, seeded_session: AsyncSession):
        pages = await walk(
            seeded_session,
            items_shape(),
            {"sortBy": "category,price", "sortOrder": "DESC,DESC", "limit": "2"},
        )

        assert [item_id for page in pages for item_id in page] == [4, 1, 5, 3, 2]

    async def test_filters_apply_before_paging(self, seeded_session: AsyncSession):
        pages = await walk(seeded_session, items_shape(), {"nameLike": "LAMP", "limit": "1"})

        assert pages == [[1], [2], [5]]

    async def test_like_escapes_wildcards(self, seeded_session: AsyncSession):
        page = await PaginationExecutor(codec).execute(
            seeded_session, select(Item), items_shape().parse({"nameLike": "_shade 100%"})
        )

        assert ids(page) == [5]

    async def test_column_statement_returns_mappings(self, seeded_session: AsyncSession):
        statement = select(Item.id, Item.name, Item.category)

        pages = await walk(
            seeded_session, items_shape(), {"sortBy": "name", "limit": "2"}, statement
        )

        assert [item_id for page in pages for item_id in page] == [4, 1, 2, 5, 3]

    async def test_sort_column_missing_from_statement(self, seeded_session: AsyncSession):
        statement = select(Item.id, Item.name)

        pages = await walk(seeded_session, items_shape(), {"sortBy": "price"}, statement)

        assert [item_id for page in pages for item_id in page] == [5, 1, 2, 4, 3]
        page = await PaginationExecutor(codec).execute(
            seeded_session, statement, items_shape().parse({"sortBy": "price"})
        )
        assert [set(row) for row in page.data] == [{"id", "name"}, {"id", "name"}]

    async def test_invalid_cursor_rejected(self, seeded_session: AsyncSession):
        with pytest.raises(InvalidCursorException):
            await PaginationExecutor(codec).execute(
                seeded_session, select(Item), items_shape().parse({"cursor": "%%%"})
            )

    async def test_cursor_from_other_sort_rejected(self, seeded_session: AsyncSession):
        shape = items_shape()
        executor = PaginationExecutor(codec)
        first = await executor.execute(seeded_session, select(Item), shape.parse({}))

        with pytest.raises(InvalidCursorException, match="does not match current sort"):
            await executor.execute(
                seeded_session,
                select(Item),
                shape.parse({"sortBy": "name", "cursor": first.next_cursor}),
            )

    async def test_signed_cursors(self, seeded_session: AsyncSession):
        shape = items_shape()
        executor = PaginationExecutor(SignedCursorCodec("s3cret"))

        first = await executor.execute(seeded_session, select(Item), shape.parse({}))
        second = await executor.execute(
            seeded_session, select(Item), shape.parse({"cursor": first.next_cursor})
        )
        assert ids(second) == [3, 4]

        unsigned = codec.encode({"id": 2})
        with pytest.raises(InvalidCursorException, match="signature mismatch"):
            await executor.execute(seeded_session, select(Item), shape.parse({"cursor": unsigned}))


@pytest.mark.unit
class TestJoinedSortColumns:
    """Sorting ``Product`` rows by columns of the joined ``Category`` table."""

    @pytest.mark.parametrize(
        ("params", "expected"),
        [
            ({"sortBy": "catName"}, [1, 3, 2, 4]),
            ({"sortBy": "catId"}, [1, 3, 2, 4]),
            ({"sortBy": "catId", "sortOrder": "DESC"}, [2, 4, 1, 3]),
            ({"sortBy": "catName,name", "sortOrder": "DESC,DESC"}, [4, 2, 3, 1]),
        ],
    )
    async def test_walk_visits_every_product_once(
        self, catalog_session: AsyncSession, params: dict, expected: list[int]
    ):
        statement = select(Product).join(Category)

        pages = await walk(catalog_session, products_shape(), params, statement)

        assert [product_id for page in pages for product_id in page] == expected
        assert all(len(page) == 1 for page in pages)

    async def test_foreign_id_does_not_replace_key_column(self, catalog_session: AsyncSession):
        page = await PaginationExecutor(codec).execute(
            catalog_session,
            select(Product).join(Category),
            products_shape().parse({"sortBy": "catId"}),
        )

        assert [type(row) for row in page.data] == [Product]
        assert codec.decode(page.next_cursor) == {"catId": 1, "id": 1}

    async def test_column_statement_over_join(self, catalog_session: AsyncSession):
        statement = select(Product.id, Category.name.label("category")).join_from(
            Product, Category
        )

        pages = await walk(
            catalog_session, products_shape(), {"sortBy": "catName", "limit": "3"}, statement
        )

        assert pages == [[1, 3, 2], [4]]

    async def test_filter_on_joined_column(self, catalog_session: AsyncSession):
        pages = await walk(
            catalog_session,
            products_shape(),
            {"catName": "b", "sortBy": "name", "sortOrder": "DESC"},
            select(Product).join(Category),
        )

        assert pages == [[4], [2]]


def doubled_price_shape(column) -> QueryShape:
    return QueryShape(
        name="doubled",
        policy=PaginationPolicy(
            mode="cursor", default_limit=2, max_limit=10, cursor_key_column=Item.id
        ),
        fields=(field_spec("double", column, sortable=True),),
    )


@pytest.mark.unit
class TestExpressionSortColumns:
    """Sorting by computed expressions, labeled or not."""

    async def test_unlabeled_expression_over_entity_statement(self, seeded_session: AsyncSession):
        shape = doubled_price_shape(Item.price * 2)

        pages = await walk(seeded_session, shape, {"sortBy": "double"})

        assert pages == [[5, 1], [2, 4], [3]]

    async def test_cursor_carries_expression_value(self, seeded_session: AsyncSession):
        shape = doubled_price_shape(Item.price * 2)

        page = await PaginationExecutor(codec).execute(
            seeded_session, select(Item), shape.parse({"sortBy": "double"})
        )

        assert Decimal(str(codec.decode(page.next_cursor)["double"])) == Decimal("50")
        assert codec.decode(page.next_cursor)["id"] == 1

    async def test_labeled_expression_over_entity_statement(self, seeded_session: AsyncSession):
        shape = doubled_price_shape((Item.price * 2).label("double"))

        pages = await walk(seeded_session, shape, {"sortBy": "double", "sortOrder": "DESC"})

        assert pages == [[3, 4], [2, 1], [5]]

    async def test_labeled_expression_selected_by_statement(self, seeded_session: AsyncSession):
        double = (Item.price * 2).label("double")
        shape = doubled_price_shape(double)
        statement = select(Item, double)
        executor = PaginationExecutor(codec)

        first = await executor.execute(seeded_session, statement, shape.parse({"sortBy": "double"}))
        second = await executor.execute(
            seeded_session,
            statement,
            shape.parse({"sortBy": "double", "cursor": first.next_cursor}),
        )

        assert [set(row) for row in first.data] == [{"Item", "double"}, {"Item", "double"}]
        assert [row["Item"].id for row in first.data] == [5, 1]
        assert [row["double"] for row in first.data] == [Decimal("31"), Decimal("50")]
        assert [row["Item"].id for row in second.data] == [2, 4]


@pytest.mark.unit
class TestOffsetPagination:
    async def test_second_page(self, seeded_session: AsyncSession):
        page = await PaginationExecutor(codec).execute(
            seeded_session, select(Item), items_shape().parse({"page": "2", "limit": "2"})
        )

        assert isinstance(page, OffsetPage)
        assert ids(page) == [3, 4]
        assert page.page == 2
        assert page.limit == 2
        assert page.model_dump() == {"data": page.data, "page": 2, "limit": 2}

    async def test_page_past_the_end_is_empty(self, seeded_session: AsyncSession):
        page = await PaginationExecutor(codec).execute(
            seeded_session, select(Item), items_shape().parse({"page": "9"})
        )

        assert page.data == []
        assert page.page == 9

    async def test_sorting_and_filters(self, seeded_session: AsyncSession):
        page = await execute_query(
            seeded_session,
            select(Item),
            items_shape().parse(
                {
                    "page": "1",
                    "priceGte": "20",
                    "sortBy": "price",
                    "sortOrder": "DESC",
                    "limit": "10",
                }
            ),
            codec=codec,
        )

        assert ids(page) == [3, 4, 2, 1]

    async def test_without_sort_uses_statement_order(self, seeded_session: AsyncSession):
        page = await PaginationExecutor(codec).execute(
            seeded_session,
            select(Item).order_by(Item.id.desc()),
            items_shape(mode="offset").parse({"limit": "3"}),
        )

        assert ids(page) == [5, 4, 3]


@pytest.mark.unit
class TestModeValidation:
    async def test_cursor_query_on_offset_policy_rejected(self, seeded_session: AsyncSession):
        parsed = items_shape().parse({})
        offset_policy = items_shape(mode="offset").policy
        mismatched = type(parsed)(
            filters=parsed.filters,
            sorting=parsed.sorting,
            limit=parsed.limit,
            mode=parsed.mode,
            policy=offset_policy,
        )

        with pytest.raises(PaginationModeException) as exc_info:
            await PaginationExecutor(codec).execute(seeded_session, select(Item), mismatched)

        assert exc_info.value.use_parameter == "page"

    async def test_offset_query_on_cursor_policy_rejected(self, seeded_session: AsyncSession):
        parsed = items_shape().parse({"page": "1"})
        cursor_policy = items_shape(mode="cursor").policy
        mismatched = type(parsed)(
            filters=parsed.filters,
            sorting=parsed.sorting,
            limit=parsed.limit,
            mode=parsed.mode,
            policy=cursor_policy,
            page=1,
            offset=0,
        )

        with pytest.raises(PaginationModeException) as exc_info:
            await PaginationExecutor(codec).execute(seeded_session, select(Item), mismatched)

        assert exc_info.value.use_parameter == "cursor"


@pytest.mark.unit
def test_selects_single_entity():
    assert selects_single_entity(select(Item))
    assert not selects_single_entity(select(Item.id))
    assert not selects_single_entity(select(Item.id, Item.name))


@pytest.mark.unit
def test_default_codec_follows_settings(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("PAGINATION_CURSOR_SECRET", "s3cret")

    assert isinstance(PaginationExecutor().codec, SignedCursorCodec)
