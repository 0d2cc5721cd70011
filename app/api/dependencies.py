"""API dependencies for FastAPI.

This module provides dependency injection functions for FastAPI endpoints
to access repositories, services, the click tracker and the requester's
identity.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings
from app.core.security import AuthenticationError, decode_access_token
from app.repositories.click_repository import ClickEventRepository
from app.repositories.link_repository import ShortLinkRepository
from app.services.analytics import AnalyticsService
from app.services.cache import CacheService, cache_service
from app.services.resolver import LinkResolver
from app.services.shortener import ShortLinkService
from app.services.tracker import ClickTracker, click_tracker

bearer_scheme = HTTPBearer(auto_error=False)


async def get_link_repository() -> ShortLinkRepository:
    """Get an instance of the short link repository."""
    return ShortLinkRepository()


async def get_click_repository() -> ClickEventRepository:
    """Get an instance of the click event repository."""
    return ClickEventRepository()


async def get_cache_service() -> CacheService:
    """Get the shared cache service."""
    return cache_service


async def get_click_tracker() -> ClickTracker:
    """Get the application's click tracker."""
    return click_tracker


async def get_shortener_service(
    link_repo: ShortLinkRepository = Depends(get_link_repository),
    cache: CacheService = Depends(get_cache_service),
) -> ShortLinkService:
    """Get an instance of the short link service."""
    return ShortLinkService(link_repository=link_repo, cache=cache)


async def get_link_resolver(
    link_repo: ShortLinkRepository = Depends(get_link_repository),
    cache: CacheService = Depends(get_cache_service),
) -> LinkResolver:
    """Get an instance of the redirect resolver."""
    return LinkResolver(link_repository=link_repo, cache=cache)


async def get_analytics_service(
    link_repo: ShortLinkRepository = Depends(get_link_repository),
    click_repo: ClickEventRepository = Depends(get_click_repository),
    cache: CacheService = Depends(get_cache_service),
) -> AnalyticsService:
    """Get an instance of the analytics service."""
    return AnalyticsService(link_repository=link_repo, click_repository=click_repo, cache=cache)


def get_base_url():
    """Get the base URL for shortened links."""
    return settings.BASE_URL


async def get_current_owner_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Identify the requester from the bearer token.

    Raises:
        HTTPException: 401 when the token is missing or invalid
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return decode_access_token(credentials.credentials)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_client_ip(request: Request) -> Optional[str]:
    """First address in X-Forwarded-For, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None
