"""Database connection and session management using async SQLAlchemy.

This module provides async database connectivity for the record engine.
PostgreSQL (asyncpg) is the production store; any SQLAlchemy async URL can be
supplied through DATABASE_URL (the test suite uses sqlite+aiosqlite).

Usage:
    from recordkeeper.database import get_db_context, init_db, check_database_connection

    # Initialize tables on startup
    await init_db()

    # Check connection health
    connected = await check_database_connection()

    # Session outside of a request
    async with get_db_context() as db:
        result = await db.execute(select(Model))
"""

import logging
from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import text
from sqlalchemy.pool import NullPool

from recordkeeper.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy ORM models."""
    pass


# Global engine and session factory - initialized lazily
_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_database_url() -> str:
    """Construct the async connection URL from settings.

    Returns:
        DATABASE_URL when set, otherwise a PostgreSQL URL for the asyncpg driver
    """
    if settings.database_url:
        return settings.database_url
    return (
        f"postgresql+asyncpg://{settings.postgres_user}:{settings.postgres_password}"
        f"@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}"
    )


def get_pool_kwargs(database_url: str) -> dict:
    """Connection pool arguments for ``database_url``.

    PostgreSQL gets a sized pool, or NullPool when POSTGRES_POOL_SIZE is 0.
    SQLite keeps the dialect's default pool.
    """
    if database_url.startswith("sqlite"):
        return {}
    if settings.postgres_pool_size > 0:
        return {
            "pool_size": settings.postgres_pool_size,
            "max_overflow": settings.postgres_max_overflow,
            "pool_timeout": settings.postgres_pool_timeout,
            "pool_recycle": settings.postgres_pool_recycle,
            "pool_pre_ping": True,  # Verify connections before use
        }
    return {"poolclass": NullPool}


def get_engine() -> AsyncEngine:
    """Get or create the async database engine.

    Returns:
        AsyncEngine instance
    """
    global _engine

    if _engine is None:
        database_url = get_database_url()

        _engine = create_async_engine(
            database_url,
            echo=settings.postgres_echo_sql,
            **get_pool_kwargs(database_url),
        )

        logger.info(f"Database engine created: {_engine.url.render_as_string(hide_password=True)}")

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the async session factory.

    Returns:
        async_sessionmaker configured for the database engine
    """
    global _async_session_factory

    if _async_session_factory is None:
        engine = get_engine()
        _async_session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    return _async_session_factory


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Context manager for database sessions (for use outside FastAPI dependencies).

    Usage:
        async with get_db_context() as db:
            result = await db.execute(select(Model))
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db(engine: Optional[AsyncEngine] = None) -> None:
    """Initialize database tables.

    Creates all tables defined in db_models.py if they don't exist.
    Safe to call multiple times - uses CREATE TABLE IF NOT EXISTS.
    """
    # Import models to register them with Base.metadata
    from recordkeeper import db_models  # noqa: F401

    engine = engine or get_engine()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables initialized")


async def check_database_connection() -> bool:
    """Check if the database is connected and responsive.

    Returns:
        True if connected, False otherwise
    """
    try:
        engine = get_engine()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


async def close_db() -> None:
    """Close database connections and dispose of the engine.

    Call this on application shutdown to cleanly close all connections.
    """
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database connections closed")
