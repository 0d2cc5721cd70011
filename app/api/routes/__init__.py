"""Routes package initialization.

This module exports the route collection for the application.
"""

from fastapi import APIRouter

from app.api.routes import links, redirect, health
from app.core.config import settings

# Create root router
api_router = APIRouter()

# Owner endpoints first: /url/urls and /url/analytics/... must match
# before the /url/{short_code} catch-all
api_router.include_router(
    links.router,
    prefix=f"{settings.API_PREFIX}/url"
)

api_router.include_router(
    redirect.router,
    prefix=f"{settings.API_PREFIX}/url"
)

api_router.include_router(
    health.router,
    prefix=settings.API_PREFIX
)

__all__ = ["api_router"]
