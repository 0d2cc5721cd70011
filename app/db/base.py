"""Database base configuration for SQLAlchemy with SQLModel.

This module provides the async engine, the session factory and a
connectivity check shared by the health endpoints and startup.
"""

from typing import AsyncGenerator, Dict
import asyncio
import logging
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool
from sqlalchemy.sql import text

from app.core.config import settings

logger = logging.getLogger(__name__)

_POOLED_ENGINE = {
    "pool_size": settings.POSTGRES_POOL_SIZE,
    "max_overflow": settings.POSTGRES_POOL_MAX_OVERFLOW,
    "pool_timeout": settings.POSTGRES_POOL_TIMEOUT,
    "pool_recycle": settings.POSTGRES_POOL_RECYCLE,
    "pool_pre_ping": True,
}

# Mapping of environment to SQLAlchemy engine configurations
ENGINE_CONFIGS: Dict[str, Dict] = {
    "development": {"echo": settings.DB_ECHO, **_POOLED_ENGINE},
    "staging": {"echo": False, **_POOLED_ENGINE},
    "production": {"echo": False, **_POOLED_ENGINE},
    "testing": {
        "echo": False,
        "poolclass": NullPool,  # Every session gets its own connection
    },
}


def get_engine_config() -> Dict:
    """Engine keyword arguments for the current environment.

    SQLite URLs never get pool sizing arguments; they use NullPool.
    """
    if settings.SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        return ENGINE_CONFIGS["testing"]
    return ENGINE_CONFIGS.get(settings.ENVIRONMENT.value, ENGINE_CONFIGS["development"])


def get_engine() -> AsyncEngine:
    """Create and configure an async SQLAlchemy engine."""
    engine_url = str(settings.SQLALCHEMY_DATABASE_URI)
    logger.info(f"Creating database engine for {engine_url.split('@')[-1]}")
    return create_async_engine(engine_url, **get_engine_config())


# Shared async engine instance
engine = get_engine()

# Async session factory
async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Open a session from the shared factory and always close it."""
    session = async_session_factory()
    try:
        yield session
    finally:
        await session.close()


class DatabaseHealthCheck:
    """Health check functionality for the database connection."""

    @staticmethod
    async def check_connection() -> Dict:
        """Run ``SELECT 1`` and report status and latency."""
        loop = asyncio.get_running_loop()
        start_time = loop.time()
        status = "healthy"
        error_message = None
        latency_ms = 0

        try:
            async with get_session() as session:
                await session.execute(text("SELECT 1"))
            latency_ms = int((loop.time() - start_time) * 1000)
        except (SQLAlchemyError, OSError) as e:
            status = "unhealthy"
            error_message = str(e)
            logger.error(f"Database health check failed: {e}")

        return {
            "status": status,
            "latency_ms": latency_ms,
            "error": error_message,
        }
