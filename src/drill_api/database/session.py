from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
)

from drill_api.config import get_settings


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """
    SQLite ships with foreign keys switched off per connection. Turn them on for every
    new DBAPI connection so ON DELETE CASCADE and reference checks match Postgres.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _unicode_lower(value):
    if isinstance(value, str):
        return value.lower()
    return value


def enable_sqlite_unicode_lower(engine: AsyncEngine) -> None:
    """
    SQLite's built-in lower() folds ASCII only, so "Éclair" and "éclair" would slip
    past the lower(name) unique indexes and lookups. Replace it on every connection
    with Python's str.lower, the same folding the name pre-check applies.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _register_lower(dbapi_connection, connection_record):
        # Index expressions may only use deterministic functions
        dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    engine = create_async_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,              # Enables connection health checks
    )
    enable_sqlite_foreign_keys(engine)
    enable_sqlite_unicode_lower(engine)
    return engine


# The engine is built on first use rather than at import time, so importing the
# package never needs a reachable database or a populated environment.
@lru_cache()
def get_engine() -> AsyncEngine:
    settings = get_settings()
    return build_engine(settings.DATABASE_URL, echo=settings.SQLALCHEMY_ECHO)


@lru_cache()
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency. Yields a session and ensures it's closed after the request.

    Usage:
        async def endpoint(db: AsyncSession = Depends(get_async_session)):
            await db.execute(...)
    """
    async with get_session_maker()() as session:
        yield session
