"""Short link management service.

This module contains the ShortLinkService class which implements link
creation, owner listings and deletion, keeping the cache in step with the
store on every write.
"""

import logging
import math
import re
import uuid
from typing import List, Optional, Tuple

from nanoid import generate
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.session import db_transaction
from app.models.link import ShortLink
from app.repositories.base import (
    DuplicateEntityError,
    EntityNotFoundError,
    OwnershipError,
    RepositoryError,
)
from app.repositories.link_repository import ShortLinkRepository
from app.services.cache import CacheService
from app.services.exceptions import (
    ConstraintViolationError,
    ForbiddenError,
    InvalidURLError,
    ShortLinkNotFoundError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)

# RFC 3986 scheme followed by a non-empty remainder
_ABSOLUTE_URI_RE = re.compile(r"^(?P<scheme>[A-Za-z][A-Za-z0-9+.\-]*):(?P<rest>.+)$", re.DOTALL)

# Schemes whose URIs must carry a host
_NETWORK_URL_RE = re.compile(
    r"^(https?|ftp)://"
    r"([^\s/?#@]+@)?"  # userinfo
    r"(\[[0-9A-Fa-f:.]+\]"  # IPv6 literal
    r"|[A-Za-z0-9]([A-Za-z0-9-]*[A-Za-z0-9])?(\.[A-Za-z0-9]([A-Za-z0-9-]*[A-Za-z0-9])?)*)"  # host
    r"(:\d{1,5})?"  # port
    r"([/?#][^\s]*)?$",  # path, query, fragment
    re.IGNORECASE,
)
_NETWORK_SCHEMES = {"http", "https", "ftp"}


def build_full_short_url(short_code: str, base_url: Optional[str] = None) -> str:
    """Public URL of a short code under the configured base URL."""
    return f"{(base_url or settings.BASE_URL).rstrip('/')}/{short_code}"


class ShortLinkService:
    """
    Service for creating, listing and deleting short links.

    Creation allocates a random code, retries a bounded number of times on
    collision, persists, then primes ``url:<code>`` in the cache. Deletion
    commits the soft delete and then drops the link's cache entries before
    returning.
    """

    def __init__(self, link_repository: ShortLinkRepository, cache: CacheService):
        self.link_repository = link_repository
        self.cache = cache

    async def create_short_link(self, db: AsyncSession, owner_id: str, original_url: str) -> ShortLink:
        """
        Create a short link for ``original_url`` owned by ``owner_id``.

        Raises:
            InvalidURLError: If the URL is not a valid absolute URI; raised
                before any database access
            ConstraintViolationError: If the code is still taken after the
                allowed regenerations
            StoreUnavailableError: If the database fails
        """
        if not self.is_valid_url(original_url):
            raise InvalidURLError(f"Invalid URL format: {original_url}")

        link = await self._persist_short_link(db, owner_id, original_url)

        # Best effort: a cold cache only costs one database read later
        if not await self.cache.set_url(link.short_code, link.original_url):
            logger.info(f"Short link {link.short_code} created without priming the cache")
        return link

    @db_transaction(db_param_name="db")
    async def _persist_short_link(self, db: AsyncSession, owner_id: str, original_url: str) -> ShortLink:
        try:
            short_code = await self._allocate_short_code(db)
            return await self.link_repository.create_short_link(
                db,
                {"owner_id": owner_id, "original_url": original_url, "short_code": short_code},
            )
        except DuplicateEntityError as e:
            logger.warning(f"Short code collision survived regeneration: {e}")
            raise ConstraintViolationError(str(e)) from e
        except RepositoryError as e:
            logger.error(f"Error creating short link: {e}")
            raise StoreUnavailableError("Failed to create short link") from e

    async def _allocate_short_code(self, db: AsyncSession) -> str:
        """
        Draw a code, regenerating while it is taken.

        At most ``settings.URL_CODE_MAX_RETRIES`` regenerations happen. The
        last candidate is returned even if it is still taken; the insert
        then reports the collision.
        """
        short_code = self.generate_short_code()
        retries = 0
        while retries < settings.URL_CODE_MAX_RETRIES and await self.link_repository.short_code_exists(db, short_code):
            retries += 1
            logger.info(f"Short code {short_code} already in use, regenerating ({retries}/{settings.URL_CODE_MAX_RETRIES})")
            short_code = self.generate_short_code()
        return short_code

    async def list_owner_links(
        self,
        db: AsyncSession,
        owner_id: str,
        page: int = 1,
        limit: Optional[int] = None
    ) -> Tuple[List[ShortLink], dict]:
        """
        One page of the owner's live links, newest first.

        Returns:
            The links and a pagination dict with total, page, limit and
            totalPages
        """
        limit = limit or settings.PAGE_SIZE_DEFAULT
        try:
            links, total = await self.link_repository.get_by_owner(
                db, owner_id, limit=limit, offset=(page - 1) * limit
            )
        except RepositoryError as e:
            logger.error(f"Error listing short links: {e}")
            raise StoreUnavailableError("Failed to list short links") from e

        pagination = {
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit) if total else 0,
        }
        return links, pagination

    async def delete_short_link(self, db: AsyncSession, link_id: uuid.UUID, owner_id: str) -> ShortLink:
        """
        Soft delete a link owned by ``owner_id`` and evict its cache entries.

        Eviction happens after the commit, so a redirect racing the delete
        can only repopulate the cache from a row that is still live.

        Raises:
            ShortLinkNotFoundError: If no live link has this id
            ForbiddenError: If the link belongs to someone else
            StoreUnavailableError: If the database fails
        """
        link = await self._soft_delete(db, link_id, owner_id)
        await self.cache.delete_url(link.short_code)
        await self.cache.delete_analytics(link.id)
        logger.info(f"Short link {link.short_code} deleted")
        return link

    @db_transaction(db_param_name="db")
    async def _soft_delete(self, db: AsyncSession, link_id: uuid.UUID, owner_id: str) -> ShortLink:
        try:
            return await self.link_repository.soft_delete(db, link_id, owner_id)
        except EntityNotFoundError as e:
            raise ShortLinkNotFoundError(f"Short link {link_id} not found") from e
        except OwnershipError as e:
            raise ForbiddenError("You do not have permission to delete this short link") from e
        except RepositoryError as e:
            logger.error(f"Error deleting short link: {e}")
            raise StoreUnavailableError("Failed to delete short link") from e

    @staticmethod
    def generate_short_code(length: Optional[int] = None) -> str:
        """Random code over the configured url-safe alphabet."""
        return generate(settings.URL_CODE_CHARS, length or settings.URL_CODE_LENGTH)

    @staticmethod
    def is_valid_url(url) -> bool:
        """
        Check that ``url`` is a syntactically valid absolute URI.

        Any scheme is accepted; http, https and ftp URLs must also name a
        host. Whitespace and control characters are rejected.
        """
        if not isinstance(url, str) or not url or len(url) > settings.URL_MAX_LENGTH:
            return False
        if any(ch.isspace() or ord(ch) < 32 for ch in url):
            return False

        match = _ABSOLUTE_URI_RE.match(url)
        if not match:
            return False
        if match.group("scheme").lower() in _NETWORK_SCHEMES:
            return bool(_NETWORK_URL_RE.match(url))
        return True
