"""Short link repository.

Every query here hides soft-deleted rows unless the caller passes
``include_deleted=True``.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.link import ShortLink, ShortLinkCreate
from app.models.timestamps import utc_now
from app.repositories.base import (
    BaseRepository,
    DuplicateEntityError,
    EntityNotFoundError,
    OwnershipError,
    RepositoryError,
)

logger = logging.getLogger(__name__)


class ShortLinkRepository(BaseRepository[ShortLink, ShortLinkCreate]):
    """
    Repository for ShortLink persistence.

    Provides creation with live-code uniqueness, lookups by code and id,
    owner listings and ownership-checked soft deletion.
    """

    def __init__(self):
        super().__init__(ShortLink)

    def _live(self, include_deleted: bool = False) -> list:
        return [] if include_deleted else [self.model_type.deleted_at.is_(None)]

    async def create_short_link(
        self,
        db: AsyncSession,
        data: Union[ShortLinkCreate, Dict[str, Any]]
    ) -> ShortLink:
        """
        Persist a new short link.

        Raises:
            DuplicateEntityError: If a live link already uses the short code
            RepositoryError: On other database errors
        """
        short_code = data.short_code if isinstance(data, ShortLinkCreate) else data.get("short_code")

        if await self.short_code_exists(db, short_code):
            raise DuplicateEntityError(self.model_type, "short_code", short_code)

        try:
            return await self.create(db, data)
        except RepositoryError as e:
            # Lost the race between the existence check and the insert
            if isinstance(e.__cause__, IntegrityError):
                raise DuplicateEntityError(self.model_type, "short_code", short_code) from e.__cause__
            raise

    async def short_code_exists(self, db: AsyncSession, short_code: str) -> bool:
        """Whether a live link uses ``short_code``."""
        return await self.exists(db, *self._live(), short_code=short_code)

    async def get_by_short_code(
        self,
        db: AsyncSession,
        short_code: str,
        include_deleted: bool = False
    ) -> Optional[ShortLink]:
        """
        Find a link by its short code.

        Returns:
            The live ShortLink if found, None otherwise. With
            ``include_deleted`` the newest matching row is returned.

        Raises:
            RepositoryError: On database errors
        """
        try:
            query = (
                select(self.model_type)
                .where(self.model_type.short_code == short_code, *self._live(include_deleted))
                .order_by(desc(self.model_type.created_at))
                .limit(1)
            )
            result = await db.execute(query)
            return result.scalars().first()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving short link by code {short_code}: {e}")
            raise RepositoryError(f"Error retrieving short link by code: {e}") from e

    async def get_link_id_by_short_code(self, db: AsyncSession, short_code: str) -> Optional[uuid.UUID]:
        """Fetch only the id of the live link using ``short_code``."""
        try:
            query = select(self.model_type.id).where(
                self.model_type.short_code == short_code, *self._live()
            )
            result = await db.execute(query)
            return result.scalars().first()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving short link id for code {short_code}: {e}")
            raise RepositoryError(f"Error retrieving short link id: {e}") from e

    async def get_live_by_id(self, db: AsyncSession, link_id: uuid.UUID) -> Optional[ShortLink]:
        """Fetch a link by id, hiding soft-deleted rows."""
        link = await self.get_by_id(db, link_id)
        if link is None or link.is_deleted:
            return None
        return link

    async def get_by_owner(
        self,
        db: AsyncSession,
        owner_id: str,
        limit: int,
        offset: int = 0
    ) -> Tuple[List[ShortLink], int]:
        """
        List an owner's live links, newest first.

        Returns:
            A page of links and the owner's total live link count

        Raises:
            RepositoryError: On database errors
        """
        conditions = [self.model_type.owner_id == owner_id, *self._live()]
        try:
            query = (
                select(self.model_type)
                .where(*conditions)
                .order_by(desc(self.model_type.created_at), desc(self.model_type.id))
                .offset(offset)
                .limit(limit)
            )
            result = await db.execute(query)
            links = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error listing short links for owner {owner_id}: {e}")
            raise RepositoryError(f"Error listing short links: {e}") from e

        total = await self.count(db, *conditions)
        return links, total

    async def soft_delete(self, db: AsyncSession, link_id: uuid.UUID, owner_id: str) -> ShortLink:
        """
        Mark a link as deleted after checking ownership.

        Raises:
            EntityNotFoundError: If no live link has this id
            OwnershipError: If the link belongs to another owner
            RepositoryError: On database errors
        """
        link = await self.get_live_by_id(db, link_id)
        if link is None:
            raise EntityNotFoundError(self.model_type, link_id)
        if link.owner_id != owner_id:
            raise OwnershipError(self.model_type, link_id)

        try:
            link.deleted_at = utc_now()
            db.add(link)
            await db.flush()
            await db.refresh(link)
            return link
        except SQLAlchemyError as e:
            logger.error(f"Error deleting short link {link_id}: {e}")
            raise RepositoryError(f"Database error deleting short link: {e}") from e

    async def get_clicks(self, db: AsyncSession, link_id: uuid.UUID) -> Optional[int]:
        """Read the stored click counter, bypassing the identity map."""
        try:
            result = await db.execute(
                select(self.model_type.clicks).where(self.model_type.id == link_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error reading click counter: {e}") from e


__all__ = ["ShortLinkRepository", "DuplicateEntityError", "EntityNotFoundError", "OwnershipError", "RepositoryError"]
