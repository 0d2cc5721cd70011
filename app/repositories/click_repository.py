"""Click event repository.

This module provides the ClickEventRepository class: the atomic
increment-and-insert used by click tracking, and the grouped queries the
analytics snapshot is built from.
"""

import logging
import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Tuple

from sqlalchemy import asc, desc, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.click import ClickEvent, ClickEventCreate
from app.models.link import ShortLink
from app.repositories.base import BaseRepository, EntityNotFoundError, RepositoryError

logger = logging.getLogger(__name__)


class ClickEventRepository(BaseRepository[ClickEvent, ClickEventCreate]):
    """
    Repository for ClickEvent records and click aggregation.

    Grouped statistics are ordered by count descending with the grouping
    key as tie-breaker; the per-day series is ordered chronologically.
    """

    def __init__(self):
        super().__init__(ClickEvent)

    async def create_click_event(
        self,
        db: AsyncSession,
        short_link_id: uuid.UUID,
        event_data: Dict[str, Any]
    ) -> ClickEvent:
        """Insert one click event for ``short_link_id``."""
        return await self.create(db, {**event_data, "short_link_id": short_link_id})

    async def record_click(
        self,
        db: AsyncSession,
        short_link_id: uuid.UUID,
        event_data: Dict[str, Any]
    ) -> ClickEvent:
        """
        Increment the link's counter and insert its click event.

        Both statements run on ``db``; the caller's transaction decides
        whether they commit together or roll back together.

        Raises:
            EntityNotFoundError: If no live link has this id
            RepositoryError: On database errors
        """
        try:
            stmt = (
                update(ShortLink)
                .where(ShortLink.id == short_link_id, ShortLink.deleted_at.is_(None))
                .values(clicks=ShortLink.clicks + 1)
                .execution_options(synchronize_session=False)
            )
            result = await db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Error incrementing clicks for short link {short_link_id}: {e}")
            raise RepositoryError(f"Error incrementing click count: {e}") from e

        if result.rowcount == 0:
            raise EntityNotFoundError(ShortLink, short_link_id)

        return await self.create_click_event(db, short_link_id, event_data)

    async def count_for_link(self, db: AsyncSession, short_link_id: uuid.UUID) -> int:
        return await self.count(db, self.model_type.short_link_id == short_link_id)

    async def get_events_for_link(
        self,
        db: AsyncSession,
        short_link_id: uuid.UUID
    ) -> List[ClickEvent]:
        """All events of a link, newest first."""
        try:
            query = (
                select(self.model_type)
                .where(self.model_type.short_link_id == short_link_id)
                .order_by(desc(self.model_type.clicked_at), desc(self.model_type.id))
            )
            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving clicks for short link {short_link_id}: {e}")
            raise RepositoryError(f"Error retrieving click events: {e}") from e

    async def _grouped_counts(
        self,
        db: AsyncSession,
        short_link_id: uuid.UUID,
        column
    ) -> List[Tuple[str, int]]:
        try:
            query = (
                select(column, func.count().label("count"))
                .where(column.isnot(None), self.model_type.short_link_id == short_link_id)
                .group_by(column)
                .order_by(desc("count"), asc(column))
            )
            result = await db.execute(query)
            return [(row[0], row[1]) for row in result.all()]
        except SQLAlchemyError as e:
            logger.error(f"Error grouping clicks by {column.key} for short link {short_link_id}: {e}")
            raise RepositoryError(f"Error grouping click events: {e}") from e

    async def get_referrer_stats(self, db: AsyncSession, short_link_id: uuid.UUID) -> List[Tuple[str, int]]:
        """Clicks per non-null referrer."""
        return await self._grouped_counts(db, short_link_id, self.model_type.referrer)

    async def get_country_stats(self, db: AsyncSession, short_link_id: uuid.UUID) -> List[Tuple[str, int]]:
        """Clicks per non-null country."""
        return await self._grouped_counts(db, short_link_id, self.model_type.country)

    async def get_clicks_by_day(self, db: AsyncSession, short_link_id: uuid.UUID) -> List[Tuple[str, int]]:
        """
        Clicks per calendar day of ``clicked_at``, oldest day first.

        Days are returned as ``YYYY-MM-DD`` strings on every backend.
        """
        day = func.date(self.model_type.clicked_at)
        try:
            query = (
                select(day.label("day"), func.count().label("count"))
                .where(self.model_type.short_link_id == short_link_id)
                .group_by(day)
                .order_by(asc(day))
            )
            result = await db.execute(query)
            return [(_format_day(row[0]), row[1]) for row in result.all()]
        except SQLAlchemyError as e:
            logger.error(f"Error grouping clicks by day for short link {short_link_id}: {e}")
            raise RepositoryError(f"Error grouping click events by day: {e}") from e

    async def aggregate_analytics(self, db: AsyncSession, short_link_id: uuid.UUID) -> Dict[str, Any]:
        """
        Run the four analytics queries for one link.

        An empty result for any grouping is a zero-count answer, not an error.

        Returns:
            Dict with ``total_clicks``, ``referrer_counts``,
            ``country_counts`` and ``day_counts``
        """
        return {
            "total_clicks": await self.count_for_link(db, short_link_id),
            "referrer_counts": await self.get_referrer_stats(db, short_link_id),
            "country_counts": await self.get_country_stats(db, short_link_id),
            "day_counts": await self.get_clicks_by_day(db, short_link_id),
        }


def _format_day(value) -> str:
    # PostgreSQL returns a date, SQLite returns the ISO string already
    if isinstance(value, (date, datetime)):
        return value.strftime("%Y-%m-%d")
    return str(value)
