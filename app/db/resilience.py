"""Startup connectivity for the database.

The service does not block on an unreachable database: it checks once,
waits, checks one more time, and starts either way. Requests that need the
database while it is down fail with a 500.
"""

import asyncio
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import text

from app.core.config import settings
from app.db.base import get_session

logger = logging.getLogger(__name__)


async def check_database_connection() -> bool:
    """Run ``SELECT 1`` on a fresh session."""
    try:
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


async def initialize_database_connection(reconnect_delay: Optional[float] = None) -> bool:
    """Connect at startup with a single delayed reconnect attempt.

    Args:
        reconnect_delay: Seconds to wait before the second attempt.
            Defaults to ``settings.DB_RECONNECT_DELAY``.

    Returns:
        bool: True if either attempt succeeded
    """
    delay = settings.DB_RECONNECT_DELAY if reconnect_delay is None else reconnect_delay

    if await check_database_connection():
        logger.info("Database connection established")
        return True

    logger.warning(f"Database unavailable at startup, retrying once in {delay:.1f} seconds")
    await asyncio.sleep(delay)

    if await check_database_connection():
        logger.info("Database connection established on reconnect")
        return True

    logger.error("Database still unavailable after reconnect attempt; continuing startup")
    return False
