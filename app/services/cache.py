"""Read-through cache for short-code resolution and analytics snapshots.

Two key families exist, both with the same TTL:

- ``url:<shortCode>`` holds the destination URL string.
- ``analytics:<shortLinkId>`` holds a JSON analytics snapshot.

The cache fails open. Any transport error is logged and reported to the
caller as a miss (reads) or as ``False`` (writes and deletes); nothing
raised by Redis reaches the request path.
"""

import uuid
from typing import Any, Optional, Union

from loguru import logger
from pydantic import ValidationError
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.redis import redis_manager
from app.models.analytics import AnalyticsSnapshot
from app.services.exceptions import CacheUnavailableError

URL_KEY_PREFIX = "url"
ANALYTICS_KEY_PREFIX = "analytics"

_TRANSPORT_ERRORS = (RedisError, OSError, CacheUnavailableError)


def url_key(short_code: str) -> str:
    return f"{URL_KEY_PREFIX}:{short_code}"


def analytics_key(short_link_id: Union[uuid.UUID, str]) -> str:
    return f"{ANALYTICS_KEY_PREFIX}:{short_link_id}"


class CacheService:
    """
    Narrow get/set/delete access to Redis with a fixed expiry policy.

    Args:
        client: Redis client to use; defaults to the shared pooled client
        default_ttl: Expiry in seconds; defaults to ``settings.CACHE_TIMEOUT``
        enabled: Switch the cache off entirely; defaults to ``settings.CACHE_ENABLED``
    """

    def __init__(
        self,
        client: Any = None,
        default_ttl: Optional[int] = None,
        enabled: Optional[bool] = None,
    ):
        self._client = client
        self.default_ttl = default_ttl if default_ttl is not None else settings.CACHE_TIMEOUT
        self.enabled = settings.CACHE_ENABLED if enabled is None else enabled

    async def _get_client(self):
        if not self.enabled:
            raise CacheUnavailableError("Cache is disabled")
        if self._client is not None:
            return self._client
        return await redis_manager.get_client()

    async def get(self, key: str) -> Optional[str]:
        """Return the cached value, or None on a miss or any failure."""
        try:
            client = await self._get_client()
            return await client.get(key)
        except _TRANSPORT_ERRORS as e:
            self._log_unavailable("get", key, e)
            return None

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        """Store ``value`` with an expiry; False if the write did not happen."""
        try:
            client = await self._get_client()
            await client.set(key, value, ex=ttl or self.default_ttl)
            return True
        except _TRANSPORT_ERRORS as e:
            self._log_unavailable("set", key, e)
            return False

    async def delete(self, key: str) -> bool:
        """Remove ``key``; False if the delete did not reach Redis."""
        try:
            client = await self._get_client()
            await client.delete(key)
            return True
        except _TRANSPORT_ERRORS as e:
            self._log_unavailable("delete", key, e)
            return False

    def _log_unavailable(self, operation: str, key: str, error: Exception) -> None:
        if not self.enabled:
            return
        logger.bind(error=str(error)).warning(
            f"CacheUnavailable: {operation} {key} failed, continuing without cache"
        )

    # Short-code resolution entries

    async def get_url(self, short_code: str) -> Optional[str]:
        return await self.get(url_key(short_code))

    async def set_url(self, short_code: str, original_url: str) -> bool:
        return await self.set(url_key(short_code), original_url)

    async def delete_url(self, short_code: str) -> bool:
        return await self.delete(url_key(short_code))

    # Analytics snapshot entries

    async def get_analytics(self, short_link_id: Union[uuid.UUID, str]) -> Optional[AnalyticsSnapshot]:
        """Return the cached snapshot; an unreadable entry counts as a miss."""
        key = analytics_key(short_link_id)
        payload = await self.get(key)
        if payload is None:
            return None
        try:
            return AnalyticsSnapshot.from_cache(payload)
        except ValidationError as e:
            logger.bind(error=str(e)).warning(f"Discarding unreadable analytics entry {key}")
            await self.delete(key)
            return None

    async def set_analytics(self, short_link_id: Union[uuid.UUID, str], snapshot: AnalyticsSnapshot) -> bool:
        return await self.set(analytics_key(short_link_id), snapshot.to_cache())

    async def delete_analytics(self, short_link_id: Union[uuid.UUID, str]) -> bool:
        return await self.delete(analytics_key(short_link_id))


# Shared instance backed by the pooled Redis client
cache_service = CacheService()
