"""Click analytics for short link owners.

Snapshots are cached under ``analytics:<shortLinkId>`` for the cache TTL.
New clicks do not evict a cached snapshot, so a cached answer can lag the
live counters by up to one TTL.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.analytics import (
    AnalyticsSnapshot,
    ClickEventSummary,
    CountryCount,
    DailyCount,
    ReferrerCount,
    ShortLinkSummary,
)
from app.models.link import ShortLink
from app.repositories.base import RepositoryError
from app.repositories.click_repository import ClickEventRepository
from app.repositories.link_repository import ShortLinkRepository
from app.services.cache import CacheService
from app.services.exceptions import (
    ForbiddenError,
    ShortLinkNotFoundError,
    StoreUnavailableError,
)
from app.services.resolver import SOURCE_CACHE, SOURCE_DATABASE
from app.services.shortener import build_full_short_url

logger = logging.getLogger(__name__)


class AnalyticsService:
    """
    Service computing and caching per-link click statistics.

    Only the owner of a link may read its analytics.
    """

    def __init__(
        self,
        link_repository: ShortLinkRepository,
        click_repository: ClickEventRepository,
        cache: CacheService,
    ):
        self.link_repository = link_repository
        self.click_repository = click_repository
        self.cache = cache

    async def get_link_analytics(
        self,
        db: AsyncSession,
        short_code: str,
        owner_id: str,
        base_url: Optional[str] = None,
    ) -> Tuple[AnalyticsSnapshot, str]:
        """
        Analytics for ``short_code`` as seen by ``owner_id``.

        Returns:
            The snapshot and its source, "cache" or "database"

        Raises:
            ShortLinkNotFoundError: If no live link uses the code
            ForbiddenError: If the requester does not own the link
            StoreUnavailableError: If the database fails
        """
        try:
            link = await self.link_repository.get_by_short_code(db, short_code)
        except RepositoryError as e:
            logger.error(f"Error loading short link {short_code} for analytics: {e}")
            raise StoreUnavailableError("Failed to load analytics") from e

        if link is None:
            raise ShortLinkNotFoundError(f"Short link with code '{short_code}' not found")
        if link.owner_id != owner_id:
            raise ForbiddenError("You do not have permission to view analytics for this short link")

        cached = await self.cache.get_analytics(link.id)
        if cached is not None:
            return cached, SOURCE_CACHE

        snapshot = await self.build_snapshot(db, link, base_url)
        await self.cache.set_analytics(link.id, snapshot)
        return snapshot, SOURCE_DATABASE

    async def build_snapshot(
        self,
        db: AsyncSession,
        link: ShortLink,
        base_url: Optional[str] = None,
    ) -> AnalyticsSnapshot:
        """Compute a fresh snapshot from the store."""
        try:
            aggregate = await self.click_repository.aggregate_analytics(db, link.id)
            events = await self.click_repository.get_events_for_link(db, link.id)
        except RepositoryError as e:
            logger.error(f"Error aggregating analytics for short link {link.id}: {e}")
            raise StoreUnavailableError("Failed to compute analytics") from e

        return AnalyticsSnapshot(
            short_link=ShortLinkSummary(
                id=link.id,
                short_code=link.short_code,
                original_url=link.original_url,
                full_short_url=build_full_short_url(link.short_code, base_url),
                clicks=link.clicks,
                created_at=link.created_at,
                updated_at=link.updated_at,
            ),
            total_clicks=aggregate["total_clicks"],
            raw_events=[ClickEventSummary.model_validate(event) for event in events],
            referrer_stats=[
                ReferrerCount(referrer=referrer, count=count)
                for referrer, count in aggregate["referrer_counts"]
            ],
            country_stats=[
                CountryCount(country=country, count=count)
                for country, count in aggregate["country_counts"]
            ],
            clicks_by_day=[
                DailyCount(date=day, count=count)
                for day, count in aggregate["day_counts"]
            ],
        )
