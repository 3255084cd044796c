"""Database configuration and session management.

Provides the async SQLAlchemy engine and session factory. The engine is
created on first use so the service runs without a database when
``database_url`` is empty.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from storeapi.domain.exceptions import PersistenceError
from storeapi.infrastructure.config import settings

# Base class for models
Base = declarative_base()

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def database_configured() -> bool:
    """Check if a database URL is configured."""
    return bool(settings.database_url)


def get_engine() -> AsyncEngine:
    """Get the async engine, creating it on first use.

    Raises:
        PersistenceError: If no database URL is configured.
    """
    global _engine
    if _engine is None:
        if not database_configured():
            raise PersistenceError("No database configured.")
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.debug,
            pool_pre_ping=True,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory bound to the engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
