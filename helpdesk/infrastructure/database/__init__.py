"""
Database Infrastructure
=======================

Manages database connections, session lifecycle, and engine configuration.

Uses SQLAlchemy 2.0 async sessions: asyncpg for PostgreSQL in production,
aiosqlite for local runs and tests.
"""

from typing import Any, AsyncGenerator, Dict, List, Optional, Type
from uuid import UUID

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from helpdesk.config import settings
from helpdesk.core import ConfigurationException


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    SQLAlchemy 2.0 style using DeclarativeBase.
    All models inherit from this class.
    """
    pass


# Global engine and session maker
_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """
    Get the database engine.

    Raises:
        RuntimeError: If engine has not been initialized
    """
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call init_database() first.")
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get the session factory used by background jobs."""
    if _session_maker is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _session_maker


def init_database(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Initialize the database engine and session maker.

    Should be called during application startup.
    """
    global _engine, _session_maker

    url = database_url or settings.database_url
    engine_kwargs: Dict[str, Any] = {"echo": settings.debug, "pool_pre_ping": True}

    if url.startswith("postgresql"):
        # asyncpg takes ssl=, not libpq's sslmode=
        url = url.replace("sslmode=", "ssl=")
        engine_kwargs["pool_size"] = settings.db_pool_size
        engine_kwargs["max_overflow"] = settings.db_max_overflow

    _engine = create_async_engine(url, **engine_kwargs)
    _session_maker = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Prevent lazy loading after commit
        autoflush=False,
    )

    return _engine


async def close_database() -> None:
    """
    Close the database engine and dispose of connections.

    Should be called during application shutdown.
    """
    global _engine, _session_maker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_maker = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Async generator for database sessions.

    For use with FastAPI's Depends() - commits on success, rolls back on error.

    Usage in FastAPI:
        @router.get("/teams")
        async def list_teams(session: AsyncSession = Depends(get_session)):
            ...
    """
    async with get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI dependency for work that opens its own sessions (the SLA sweep)."""
    return get_session_maker()


def parse_uuid(value: Optional[str]) -> Optional[UUID]:
    """Parse a string ID; None for missing or malformed values."""
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def format_uuid(value: Optional[UUID]) -> Optional[str]:
    return str(value) if value is not None else None


async def insert_ignore_conflict(
    session: AsyncSession,
    model: Type[Base],
    values: Dict[str, Any],
    conflict_columns: List[str],
) -> bool:
    """
    INSERT ... ON CONFLICT DO NOTHING against a unique constraint.

    Returns:
        True if the row was inserted, False if an existing row won.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        insert = postgresql.insert
    elif dialect == "sqlite":
        insert = sqlite.insert
    else:
        raise ConfigurationException(f"Conflict-free insert not supported on {dialect}")

    stmt = insert(model).values(**values).on_conflict_do_nothing(index_elements=conflict_columns)
    result = await session.execute(stmt)
    return result.rowcount == 1


async def create_tables(engine: Optional[AsyncEngine] = None) -> None:
    """
    Create all database tables.

    This should only be used for development/testing.
    Production should use migrations.
    """
    # Register every context's models on Base.metadata
    import helpdesk.tickets.infrastructure.models  # noqa: F401
    import helpdesk.routing.infrastructure.models  # noqa: F401
    import helpdesk.sla.infrastructure.models  # noqa: F401

    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
