"""
User Service — Database Handle
================================

What:  Async SQLAlchemy engine + session factory wrapped in a `Database`
       handle, plus the FastAPI dependency that hands out per-request sessions.
How:   The entry point builds one `Database`, calls `connect()` during the
       application lifespan (which also creates the `users` table when it is
       missing) and stores the handle on `app.state.database`.
Who:   `get_db_session` is injected into route handlers via Depends().

Schema management is create-if-absent only (`metadata.create_all`); there
are no versioned migrations.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    `Database.connect()` creates every table registered on this metadata.
    """
    pass


class Database:
    """
    Persistence handle for the service.

    Owns the engine (and therefore the connection pool) and the session
    factory. Creating the handle does not touch the network; the first
    connection is opened by `connect()`.

    Args:
        url:           Async SQLAlchemy URL (postgresql+asyncpg://, sqlite+aiosqlite://)
        pool_size:     Persistent pooled connections (ignored for SQLite)
        max_overflow:  Extra connections for bursts (ignored for SQLite)
        pool_pre_ping: Validate connections before handing them out
        echo:          Attach SQLAlchemy's own echo handler (setup_logging covers
                       SQL logging via the sqlalchemy.engine logger instead)
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_pre_ping: bool = True,
        echo: bool = False,
    ):
        self.url = make_url(url)

        engine_kwargs = {"pool_pre_ping": pool_pre_ping, "echo": echo}
        # SQLite pools are not sized the same way
        if self.url.get_backend_name() != "sqlite":
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_recycle=3600,
            )

        self.engine: AsyncEngine = create_async_engine(self.url, **engine_kwargs)

        # expire_on_commit=False: attributes stay readable after commit,
        # so a freshly inserted row can be serialized without a refresh
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings) -> "Database":
        return cls(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
        )

    async def connect(self) -> None:
        """
        Open a connection and auto-migrate the schema.

        What:  Verifies the store is reachable, then creates any table
               registered on `Base.metadata` that does not exist yet.
        When:  Once, during application startup.

        Raises:
            sqlalchemy.exc.SQLAlchemyError / OSError: the store is unreachable
            or table creation failed. The lifespan treats this as fatal.
        """
        # Import models so they register with Base.metadata
        from user_service.models import user  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            await conn.run_sync(Base.metadata.create_all)

        logger.info(
            "Connected to %s and ensured tables: %s",
            self.url.render_as_string(hide_password=True),
            ", ".join(sorted(Base.metadata.tables)),
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Async context manager yielding a session from the factory."""
        async with self.session_factory() as session:
            yield session

    async def dispose(self) -> None:
        """
        Close all pooled connections.

        When:  Application shutdown (lifespan handler).
        """
        await self.engine.dispose()
        logger.info("Database connections closed")


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    The session comes from the `Database` handle stored on the application
    by `create_app()`. On success the transaction is committed, on any
    error it is rolled back and the exception re-raised for the global
    error handlers.
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
