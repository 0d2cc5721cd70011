"""Session management for database operations.

This module provides the FastAPI session dependency plus the two ways the
service layer scopes a transaction: the ``db_transaction`` decorator for
methods that receive a request session, and ``SessionManager`` for work
that runs outside a request (click tracking).
"""

from typing import AsyncGenerator, Callable, Optional, TypeVar
import inspect
import logging
from contextlib import asynccontextmanager
from functools import wraps

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_session

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions.

    Yields:
        AsyncSession: A session that is rolled back if the request fails.
    """
    async with get_session() as session:
        try:
            yield session
        except SQLAlchemyError:
            logger.exception("Database error occurred")
            await session.rollback()
            raise
        except Exception:
            await session.rollback()
            raise


def _find_session_parameter(func: Callable, db_param_name: Optional[str]):
    """Locate the session parameter by name, or by ``AsyncSession`` annotation."""
    for position, (name, param) in enumerate(inspect.signature(func).parameters.items()):
        if db_param_name is not None:
            if name == db_param_name:
                return position, name
        elif param.annotation is AsyncSession or param.annotation == "AsyncSession":
            return position, name
    return None, None


def db_transaction(db_param_name: Optional[str] = None) -> Callable:
    """Decorator to wrap a coroutine function in a database transaction.

    The wrapped function's session is committed when it returns and rolled
    back when it raises. The session is located by ``db_param_name`` or,
    when omitted, by the first parameter annotated as ``AsyncSession``.

    Example:
        ```python
        @db_transaction(db_param_name="db")
        async def rename(self, db: AsyncSession, link_id, url):
            ...
        ```

    Raises:
        ValueError: If no session is passed at call time
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        db_param_pos, db_param_key = _find_session_parameter(func, db_param_name)
        if db_param_key is None:
            logger.warning(f"Unable to find database session parameter in '{func.__name__}'")

        @wraps(func)
        async def wrapper(*args, **kwargs):
            db = None
            if db_param_key is not None and db_param_key in kwargs:
                db = kwargs[db_param_key]
            elif db_param_pos is not None and len(args) > db_param_pos:
                db = args[db_param_pos]
            else:
                db = next(
                    (value for value in (*args, *kwargs.values()) if isinstance(value, AsyncSession)),
                    None,
                )

            if db is None:
                raise ValueError(
                    f"Database session not found in function arguments for '{func.__name__}'"
                )

            try:
                result = await func(*args, **kwargs)
                await db.commit()
                return result
            except Exception as e:
                await db.rollback()
                logger.debug(f"Transaction rolled back in '{func.__name__}': {e}")
                raise

        return wrapper
    return decorator


class SessionManager:
    """Session scopes for work that runs outside a request."""

    @staticmethod
    @asynccontextmanager
    async def transaction_context() -> AsyncGenerator[AsyncSession, None]:
        """Yield a fresh session; commit on exit, roll back on error.

        Example:
            ```python
            async with SessionManager.transaction_context() as session:
                await click_repository.record_click(session, link_id, event)
            ```
        """
        async with get_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

