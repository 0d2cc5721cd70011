"""Common API parameter definitions.

This module provides reusable parameter definitions for FastAPI endpoints.
"""

from fastapi import Query

from app.core.config import settings


def PageParam(default: int = 1) -> int:
    """
    Page number for owner listings, starting at 1.

    Args:
        default: Default page

    Returns:
        A Query parameter with validation
    """
    return Query(
        default,
        ge=1,
        description="Page number, starting at 1"
    )


def LimitParam(default: int = None) -> int:
    """
    Page size for owner listings.

    Args:
        default: Default page size; the configured default when omitted

    Returns:
        A Query parameter with validation
    """
    return Query(
        default or settings.PAGE_SIZE_DEFAULT,
        ge=1,
        le=settings.PAGE_SIZE_MAX,
        description="Number of records per page"
    )
