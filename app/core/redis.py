"""
Redis client management module.

Owns the single connection pool behind the redirect and analytics cache.
"""

from typing import Optional

import redis.asyncio as redis
from loguru import logger
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from app.core.config import settings


class RedisClientManager:
    """
    Async Redis client manager with connection pooling.

    The pool is created lazily and every socket operation is bounded by the
    configured timeouts, so a dead Redis turns into a quick error instead
    of a hung request.
    """

    _instance: Optional["RedisClientManager"] = None
    _connection_pool: Optional[ConnectionPool] = None
    _client: Optional[redis.Redis] = None

    def __new__(cls):
        """Singleton pattern to ensure only one Redis client manager exists."""
        if cls._instance is None:
            cls._instance = super(RedisClientManager, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self) -> None:
        """Initialize the Redis connection pool."""
        try:
            self._connection_pool = redis.ConnectionPool.from_url(
                settings.REDIS_URI,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
                socket_connect_timeout=settings.REDIS_CONNECT_TIMEOUT,
                decode_responses=True,
            )
            logger.debug(f"Redis connection pool created for {settings.REDIS_HOST}:{settings.REDIS_PORT}")
        except (RedisError, ValueError) as e:
            logger.error(f"Failed to create Redis connection pool: {str(e)}")
            self._connection_pool = None

    @property
    def is_enabled(self) -> bool:
        """Whether the cache is switched on in settings."""
        return settings.CACHE_ENABLED

    async def get_client(self) -> redis.Redis:
        """
        Get a Redis client bound to the shared connection pool.

        Raises:
            redis.exceptions.ConnectionError: If the pool could not be created
        """
        if self._client is None:
            if self._connection_pool is None:
                self._initialize()

            if self._connection_pool is None:
                raise RedisConnectionError("Redis connection pool is not available")
            self._client = redis.Redis(connection_pool=self._connection_pool)

        return self._client

    async def ping(self) -> bool:
        """
        Test the Redis connection with a ping command.

        Returns:
            bool: True if successful, False otherwise
        """
        try:
            client = await self.get_client()
            result = await client.ping()
            return bool(result)
        except (RedisError, OSError) as e:
            logger.warning(f"Redis ping failed: {str(e)}")
            return False

    async def close(self) -> None:
        """Close the Redis client and connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

        if self._connection_pool is not None:
            await self._connection_pool.disconnect()
            self._connection_pool = None

        logger.debug("Redis connections closed")


# Singleton instance
redis_manager = RedisClientManager()
