"""
Database engine and session management with SQLAlchemy async
"""

from typing import Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from core.config import settings
from core.exceptions import ConfigurationError
import logging

logger = logging.getLogger(__name__)


def create_engine_from_settings(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Build the async engine for the migration target.

    Raises:
        ConfigurationError: If no database URL is configured
    """
    url = database_url or settings.DATABASE_URL
    if not url:
        raise ConfigurationError(
            "DATABASE_URL is not configured",
            context={"setting": "DATABASE_URL"}
        )

    return create_async_engine(
        url,
        echo=False,
        poolclass=NullPool,  # one-shot batch job, no pooling needed
        future=True
    )


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    """Create session factory bound to the engine"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False
    )


def dialect_name(session: AsyncSession) -> str:
    """Name of the dialect the session is bound to"""
    return session.get_bind().dialect.name


def dialect_insert(session: AsyncSession):
    """
    Return the dialect-specific ``insert`` construct.

    Both PostgreSQL and SQLite expose ``on_conflict_do_update``; the generic
    SQLAlchemy insert does not.
    """
    if dialect_name(session) == "postgresql":
        return postgresql.insert
    return sqlite.insert
