"""Short code resolution for the redirect path."""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.base import RepositoryError
from app.repositories.link_repository import ShortLinkRepository
from app.services.cache import CacheService
from app.services.exceptions import ShortLinkNotFoundError, StoreUnavailableError

logger = logging.getLogger(__name__)

SOURCE_CACHE = "cache"
SOURCE_DATABASE = "database"


@dataclass(frozen=True)
class Resolution:
    """Destination of a short code and where it was found.

    ``short_link_id`` is only known when the database was read; on a cache
    hit the click tracker looks it up in the background.
    """

    short_code: str
    original_url: str
    source: str
    short_link_id: Optional[uuid.UUID] = None

    @property
    def from_cache(self) -> bool:
        return self.source == SOURCE_CACHE


class LinkResolver:
    """
    Resolve short codes through the cache, falling back to the store.

    A cache miss that finds a live link repopulates ``url:<code>`` before
    returning, so the next resolution of the same code is served from the
    cache.
    """

    def __init__(self, link_repository: ShortLinkRepository, cache: CacheService):
        self.link_repository = link_repository
        self.cache = cache

    async def resolve(self, db: AsyncSession, short_code: str) -> Resolution:
        """
        Find the destination URL for ``short_code``.

        Raises:
            ShortLinkNotFoundError: If no live link uses the code
            StoreUnavailableError: If the cache missed and the database failed
        """
        cached_url = await self.cache.get_url(short_code)
        if cached_url:
            return Resolution(short_code=short_code, original_url=cached_url, source=SOURCE_CACHE)

        try:
            link = await self.link_repository.get_by_short_code(db, short_code)
        except RepositoryError as e:
            logger.error(f"Error resolving short code {short_code}: {e}")
            raise StoreUnavailableError(f"Failed to resolve short code '{short_code}'") from e

        if link is None:
            raise ShortLinkNotFoundError(f"Short link with code '{short_code}' not found")

        await self.cache.set_url(short_code, link.original_url)
        return Resolution(
            short_code=short_code,
            original_url=link.original_url,
            source=SOURCE_DATABASE,
            short_link_id=link.id,
        )
