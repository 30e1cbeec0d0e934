"""
Core pytest configuration for the entire test suite.

This module provides only the database setup and the HTTP client shared by ALL
kinds of tests (models, repositories, services, API, logging).

Domain-specific fixtures live in:
- tests/test_fixtures/model_fixtures.py    (categories, sub-categories, drills)
- tests/test_fixtures/service_fixtures.py  (repositories and services on the test session)

Every test gets its own SQLite file under pytest's tmp_path, so commits made by the
services are real commits and nothing leaks between tests.
"""

from __future__ import annotations

# -------------------------------
# Standard library imports
# -------------------------------
import logging
from typing import AsyncGenerator

# -------------------------------
# Early logging tuning (IMPORTANT)
# -------------------------------
# Keep this block above the drill_api imports so model registration and engine
# creation stay quiet during collection.
NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "aiosqlite",
    "asyncio",
    "httpx",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

# -------------------------------
# Third-party / project imports
# -------------------------------
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from drill_api import models  # noqa: F401 - registers every table on Base.metadata
from drill_api.config.settings import Settings
from drill_api.core.dependencies import get_db_session
from drill_api.database.base import Base
from drill_api.database.session import build_engine
from drill_api.main import create_app


# ------------------------------------------------------------------------------------------------
# SETTINGS
# ------------------------------------------------------------------------------------------------

@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """
    Settings for one test: a throwaway SQLite database and console-only logging.
    Tables are created by the `async_engine` fixture, not by the app lifespan.
    """
    return Settings(
        ENV="testing",
        SQLALCHEMY_DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        DB_CREATE_TABLES=False,
        LOG_TO_STDOUT=True,
        LOG_FORMAT="json",
        LOG_LEVEL="INFO",
    )


# ------------------------------------------------------------------------------------------------
# DATABASE FIXTURES
# ------------------------------------------------------------------------------------------------

@pytest.fixture
async def async_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    # build_engine switches SQLite foreign keys on, so cascades behave like Postgres
    engine = build_engine(test_settings.DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """
    A session for repository and service tests.

    Services commit, so the data written through this session is visible to a
    second session opened from `session_maker`, which is how the tests check what
    actually reached the database.
    """
    async with session_maker() as session:
        yield session


# ------------------------------------------------------------------------------------------------
# API FIXTURES
# ------------------------------------------------------------------------------------------------

@pytest.fixture
def app(test_settings: Settings, session_maker):
    """
    The real application, with `get_db_session` overridden so every request gets its
    own session on the test database (as in production, one session per request).
    """
    application = create_app(test_settings)

    async def _override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    application.dependency_overrides[get_db_session] = _override_get_db_session
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# Domain fixtures, registered globally
from .test_fixtures.model_fixtures import (  # noqa: E402
    create_category,
    create_sub_category,
    create_drill,
    kicks,
    punches,
)
from .test_fixtures.service_fixtures import (  # noqa: E402
    category_repository,
    drill_repository,
    category_service,
    sub_category_service,
    drill_service,
    fresh_session,
)
