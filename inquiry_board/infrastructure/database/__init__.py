"""
Database Infrastructure
=======================

Manages database connections, session lifecycle, and engine configuration.

Uses SQLAlchemy 2.0 async sessions (asyncpg in production, aiosqlite in tests).
The store handle is an explicitly constructed ``Database`` object that is
passed to the workflow state machine and the triage worker; nothing reaches
for a module-level connection.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from inquiry_board.config import Settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    SQLAlchemy 2.0 style using DeclarativeBase.
    All models inherit from this class.
    """
    pass


class Database:
    """
    Owns one async engine and its session factory.

    ``session()`` is the unit of work: everything done inside the block is
    committed together on exit, or rolled back together if the block raises.
    """

    def __init__(
        self,
        url: str,
        echo: bool = False,
        pool_size: Optional[int] = None,
        max_overflow: Optional[int] = None,
    ):
        engine_kwargs = {"echo": echo, "pool_pre_ping": True}
        # SQLite (tests) uses a static pool that rejects sizing arguments
        if not url.startswith("sqlite") and pool_size is not None:
            engine_kwargs["pool_size"] = pool_size
            engine_kwargs["max_overflow"] = max_overflow or 0

        self._engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self._session_maker: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Prevent lazy loading after commit
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Build the database handle from application settings."""
        # Fix asyncpg SSL: replace sslmode with ssl for asyncpg compatibility
        url = settings.database_url.replace("sslmode=", "ssl=")
        return cls(
            url,
            echo=settings.debug,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Async context manager for one unit of work.

        Usage:
            async with database.session() as session:
                store = SQLAlchemyTicketStore(session)
                await store.append_log(...)

        Yields:
            AsyncSession: SQLAlchemy async session
        """
        async with self._session_maker() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """
        Create all database tables.

        This should only be used for development/testing.
        Production should use migrations.
        """
        # Models must be imported so their tables are registered on Base
        from inquiry_board.workflow.infrastructure import models  # noqa: F401

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Close the engine and dispose of pooled connections."""
        await self._engine.dispose()
