"""API request and response schemas.

This module contains Pydantic models for API request validation
and response serialization. Bodies are exchanged in camelCase; requests
also accept the snake_case field names.
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from app.models.analytics import AnalyticsSnapshot, CamelModel


class ShortenRequest(CamelModel):
    """Request schema for creating a short link."""
    original_url: str = Field(..., min_length=1)

    @field_validator("original_url")
    @classmethod
    def strip_url(cls, v: str) -> str:
        return v.strip()


class ShortLinkResponse(CamelModel):
    """Response schema for a short link owned by the requester."""
    id: uuid.UUID
    short_code: str
    original_url: str
    full_short_url: str  # Public URL including the base address
    clicks: int
    created_at: datetime
    updated_at: Optional[datetime] = None


class Pagination(CamelModel):
    """Page position within an owner's listing."""
    total: int
    page: int
    limit: int
    total_pages: int


class ShortLinkListResponse(CamelModel):
    """Response schema for listing the requester's short links."""
    urls: List[ShortLinkResponse]
    pagination: Pagination


class AnalyticsResponse(CamelModel):
    """Response schema for link analytics, tagged with where it came from."""
    data: AnalyticsSnapshot
    source: Literal["cache", "database"]


class DeleteResponse(CamelModel):
    """Response schema for a completed delete."""
    success: bool
    message: str


class ErrorResponse(CamelModel):
    """Response schema for errors."""
    detail: str
    error_id: Optional[str] = None  # Set for unexpected server errors
