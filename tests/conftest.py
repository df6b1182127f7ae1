"""Pytest configuration and shared fixtures.

Organization:
    - Settings Fixtures: isolated PAGINATION_/LOG_ environment
    - Database Fixtures: in-memory SQLite engine, session, seeded items and catalog
    - Application Fixtures: FastAPI app exposing the items shape, HTTP client
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from listquery.app.dependencies import get_pagination_executor
from listquery.core.settings import clear_all_caches
from tests.fixtures.models import Base, Category, Item, Product

if TYPE_CHECKING:
    from fastapi import FastAPI
    from sqlalchemy.ext.asyncio import AsyncEngine

# Keep tests independent of the developer's environment and .env file
for _name in list(os.environ):
    if _name.startswith(("PAGINATION_", "LOG_")):
        del os.environ[_name]


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Reload cached settings around every test."""
    clear_all_caches()
    get_pagination_executor.cache_clear()
    yield
    clear_all_caches()
    get_pagination_executor.cache_clear()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Async SQLAlchemy engine on a fresh in-memory SQLite database."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Session with the test tables created."""
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture
async def seeded_session(db_session: AsyncSession) -> AsyncSession:
    """Session holding items with ids 1..5.

    Items 2 and 3 share ``category`` and ``created_at`` so sorting by either
    needs the id tie-breaker.
    """
    base = datetime(2025, 1, 1, 12, 0, 0)
    rows = [
        Item(id=1, name="Desk lamp", category="lighting", price=Decimal("25.00"), created_at=base),
        Item(
            id=2,
            name="Floor lamp",
            category="furniture",
            price=Decimal("80.00"),
            created_at=base + timedelta(days=1),
        ),
        Item(
            id=3,
            name="Office chair",
            category="furniture",
            price=Decimal("150.00"),
            created_at=base + timedelta(days=1),
        ),
        Item(
            id=4,
            name="Bookshelf",
            category="storage",
            price=Decimal("120.00"),
            created_at=base + timedelta(days=2),
        ),
        Item(
            id=5,
            name="Lamp_shade 100%",
            category="lighting",
            price=Decimal("15.50"),
            created_at=base + timedelta(days=3),
        ),
    ]
    db_session.add_all(rows)
    await db_session.commit()
    return db_session


@pytest.fixture
async def catalog_session(db_session: AsyncSession) -> AsyncSession:
    """Session holding categories 1 ('a') and 2 ('b') and products 1..4.

    Products alternate between the categories, so category ids and product ids
    overlap and sorting by a category column repeats values across products.
    """
    db_session.add_all([Category(id=1, name="a"), Category(id=2, name="b")])
    await db_session.flush()
    db_session.add_all(
        [
            Product(id=1, name="p1", category_id=1),
            Product(id=2, name="p2", category_id=2),
            Product(id=3, name="p3", category_id=1),
            Product(id=4, name="p4", category_id=2),
        ]
    )
    await db_session.commit()
    return db_session


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app(seeded_session: AsyncSession) -> FastAPI:
    """FastAPI app with an ``/items`` endpoint backed by the seeded session."""
    from tests.fixtures.app import create_test_app

    return create_test_app(seeded_session)


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Async HTTP client for the test app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
