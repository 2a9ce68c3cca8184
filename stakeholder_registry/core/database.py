"""Async engine construction and the database handle injected into the stores.

Stores never touch a global engine: they receive a ``Database`` (one pooled
session per call) or a ``TransactionScope`` (one shared session inside an
open transaction) and open sessions through it.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from stakeholder_registry.core.config import Settings, settings

logger = structlog.get_logger()


class Base(DeclarativeBase):
    pass


def _configure_sqlite_connection(dbapi_connection: Any, connection_record: Any) -> None:
    # Hand transaction control to SQLAlchemy so SAVEPOINTs nest correctly
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_sqlite_transaction(conn: Any) -> None:
    conn.exec_driver_sql("BEGIN")


def build_engine(url: str | None = None, config: Settings | None = None) -> AsyncEngine:
    """Create the async engine for ``url`` (defaults to ``DATABASE_URL``).

    Pool sizing and statement timeouts only apply to PostgreSQL. SQLite
    connections get foreign key enforcement switched on, and SQLAlchemy
    emits BEGIN itself so transaction scopes can use SAVEPOINTs.
    """
    config = config or settings
    url = url or config.DATABASE_URL
    parsed = make_url(url)
    backend = parsed.get_backend_name()

    if backend == "postgresql":
        connect_args: dict[str, Any] = {}
        if parsed.get_driver_name() == "asyncpg":
            connect_args = {
                "server_settings": {
                    "statement_timeout": str(config.DB_STATEMENT_TIMEOUT_MS),
                    "idle_in_transaction_session_timeout": "60000",
                },
                "command_timeout": config.DB_STATEMENT_TIMEOUT_MS / 1000,
            }
        engine = create_async_engine(
            url,
            echo=config.APP_DEBUG,
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW,
            pool_pre_ping=True,               # Drop stale connections before use
            pool_recycle=config.DB_POOL_RECYCLE,
            pool_timeout=config.DB_POOL_TIMEOUT,
            connect_args=connect_args,
        )
    else:
        engine = create_async_engine(url, echo=config.APP_DEBUG)
        if backend == "sqlite":
            event.listen(engine.sync_engine, "connect", _configure_sqlite_connection)
            event.listen(engine.sync_engine, "begin", _begin_sqlite_transaction)

    logger.info("database_engine_created", backend=backend, driver=parsed.get_driver_name())
    return engine


class Database:
    """Owns the engine and hands out sessions to the stores."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> Database:
        """Database for ``config.DATABASE_URL`` (the global settings by default)."""
        return cls(build_engine(config=config))

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Read session on its own pooled connection."""
        async with self._session_factory() as session:
            yield session

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[AsyncSession]:
        """Write session; commits on clean exit, rolls back on error."""
        async with self._session_factory() as session:
            async with session.begin():
                yield session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[TransactionScope]:
        """Open one transaction shared by every call made through the scope."""
        async with self._session_factory() as session:
            async with session.begin():
                yield TransactionScope(session)

    async def create_all(self) -> None:
        import stakeholder_registry.models  # noqa: F401 — register tables on Base.metadata

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


class TransactionScope:
    """Session source pinned to a single session inside an open transaction.

    Concurrent callers are serialised on the lock: an AsyncSession must never
    run two statements at once. Each write runs inside its own SAVEPOINT, so
    a rejected write is rolled back alone and the scope stays usable.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self._lock:
            yield self._session

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[AsyncSession]:
        """Write session; the outer transaction commits when the scope exits."""
        async with self._lock:
            async with self._session.begin_nested():
                yield self._session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[TransactionScope]:
        yield self


SessionSource = Database | TransactionScope
