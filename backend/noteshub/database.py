"""
NotesHub Backend — Database Engine & Sessions
==============================================

What:  Async SQLAlchemy engine, session factory and declarative base.
How:   The engine is created lazily on first use so tests and the CLI can
       configure DATABASE_URL before anything connects. SqlNoteStore opens
       one session per operation from `get_session_factory()`.

Connection Pooling (PostgreSQL):
    pool_size=20, max_overflow=10 → at most 30 connections
    pool_pre_ping validates connections before use
    pool_recycle=3600 recycles connections every hour

SQLite (tests, local experiments) uses SQLAlchemy's default pool and
ignores the pool sizing settings.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from noteshub.config import settings

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object, which Alembic reads for autogenerate.
    """
    pass


def _engine_kwargs(database_url: str) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not database_url.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return kwargs


def get_engine() -> AsyncEngine:
    """Return the process-wide async engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            settings.database_url, **_engine_kwargs(settings.database_url)
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Return the shared session factory.

    expire_on_commit=False keeps attributes readable after commit, which the
    stores rely on when they hand ORM objects back to the service layer.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


async def ping_database(engine: Optional[AsyncEngine] = None) -> None:
    """
    Execute SELECT 1 against the database.

    Raises whatever the driver raises when the database is unreachable;
    callers decide whether that means "error" or "switch to fallback".
    """
    engine = engine or get_engine()
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def create_tables(engine: Optional[AsyncEngine] = None) -> None:
    """Create any missing tables from the ORM metadata (DB_AUTO_CREATE)."""
    # Models must be imported so they register with Base.metadata
    from noteshub.models import note  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def dispose_engine() -> None:
    """
    Close all pooled connections. Called during application shutdown.
    """
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
