"""
Database Infrastructure
=======================

Manages database engines, session factories and schema creation.

Uses SQLAlchemy 2.0 async engines (asyncpg for PostgreSQL, aiosqlite for
local runs and tests). Engines are owned by whoever creates them; there is
no process-wide engine, so every engine runtime disposes only its own pool.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from priority_alerts.config import Settings, get_settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    SQLAlchemy 2.0 style using DeclarativeBase.
    All models inherit from this class.
    """
    pass


def create_engine(
    database_url: Optional[str] = None,
    settings: Optional[Settings] = None
) -> AsyncEngine:
    """
    Create a database engine.

    Args:
        database_url: Explicit URL, overrides settings.database_url
        settings: Settings to read pool sizing and debug flag from

    Returns:
        AsyncEngine: New engine; the caller disposes it
    """
    settings = settings or get_settings()
    url = database_url or settings.database_url

    if url.startswith("sqlite"):
        # In-memory SQLite must share one connection across sessions
        engine_kwargs = {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    else:
        # Fix asyncpg SSL: replace sslmode with ssl for asyncpg compatibility
        url = url.replace("sslmode=", "ssl=")
        engine_kwargs = {
            "pool_size": settings.db_pool_size,
            "max_overflow": settings.db_max_overflow,
            "pool_pre_ping": True,
        }

    return create_async_engine(url, echo=settings.debug, **engine_kwargs)


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to an engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Prevent lazy loading after commit
        autoflush=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """
    Create all database tables.

    This should only be used for development/testing.
    Production should use migrations.
    """
    # Register models on Base.metadata
    from priority_alerts.alerts.infrastructure import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
