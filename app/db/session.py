"""
Database session management.
"""
# app/db/session.py
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional, Type, TypeVar

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from fastapi import Depends

from app.core.config import settings

logger = logging.getLogger("ledgerflow.db")


def build_engine(database_url: str) -> AsyncEngine:
    """
    Create the async engine for ``database_url``.

    SQLite gets one connection per session; server databases keep a pool sized
    for concurrent imports.
    """
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=settings.DEBUG, poolclass=NullPool)

    return create_async_engine(
        database_url,
        echo=settings.DEBUG,
        pool_size=20,
        max_overflow=30,
        pool_timeout=30,
        pool_recycle=3600,
        pool_pre_ping=True
    )


engine = build_engine(settings.DATABASE_URL)

# Create async session factory
async_session_factory = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

# Context manager for database sessions
@asynccontextmanager
async def get_session(
    session_factory: Optional[sessionmaker] = None
) -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions.

    Automatically handles commit/rollback and ensures session is closed.
    Services that own their own factory pass it in; otherwise the
    application factory is used.

    Usage:
        async with get_session() as session:
            # Use session here
    """
    session = (session_factory or async_session_factory)()
    try:
        yield session
        await session.commit()
        logger.debug("Database session committed")
    except Exception as e:
        await session.rollback()
        logger.error(f"Database session rolled back due to: {str(e)}")
        raise
    finally:
        await session.close()
        logger.debug("Database session closed")

# Dependency function for FastAPI endpoints
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Get a database session for FastAPI endpoints via dependency injection.
    """
    async with get_session() as session:
        yield session

# Create a type variable for repository types
T = TypeVar('T')

# Factory function for repositories
def get_repository_factory(repo_type: Type[T]):
    """
    Create a repository factory for use with FastAPI dependency injection.

    Usage:
        @router.get("/")
        async def endpoint(repo = Depends(get_repository_factory(UserRepository))):
            # Use repo here
    """
    async def _get_repo(session: AsyncSession = Depends(get_db)) -> T:
        return repo_type(session)
    return _get_repo


async def initialize_database(create_tables: Optional[bool] = None) -> None:
    """
    Check the database is reachable and create any missing tables.

    This should be called during application startup.
    """
    from app.db.base import Base

    logger.info("Initializing database connection pool")

    async with get_session() as session:
        await session.execute(text("SELECT 1"))

    if create_tables is None:
        create_tables = settings.DATABASE_CREATE_TABLES

    if create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    logger.info("Database initialization complete")


async def close_database_connections() -> None:
    """
    Close all database connections in the pool.

    This should be called during application shutdown.
    """
    logger.info("Closing database connections")
    await engine.dispose()
    logger.info("Database connections closed")
