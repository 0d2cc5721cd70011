"""Service layer for the short-link service.

Services orchestrate the repositories and the cache: link creation and
deletion, redirect resolution, background click tracking and analytics.
"""

from app.services.cache import CacheService, cache_service
from app.services.shortener import ShortLinkService
from app.services.resolver import LinkResolver, Resolution
from app.services.tracker import ClickTracker, ClickVisit, click_tracker
from app.services.analytics import AnalyticsService

__all__ = [
    "CacheService",
    "cache_service",
    "ShortLinkService",
    "LinkResolver",
    "Resolution",
    "ClickTracker",
    "ClickVisit",
    "click_tracker",
    "AnalyticsService",
]
