"""Analytics snapshot schemas.

A snapshot is what the analytics endpoint returns and what is stored in the
cache under ``analytics:<shortLinkId>``. It serialises to camelCase JSON and
parses back to an equal object.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for payloads exposed with camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ShortLinkSummary(CamelModel):
    id: uuid.UUID
    short_code: str
    original_url: str
    full_short_url: str
    clicks: int
    created_at: datetime
    updated_at: Optional[datetime] = None


class ClickEventSummary(CamelModel):
    id: uuid.UUID
    short_link_id: uuid.UUID
    referrer: Optional[str] = None
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    clicked_at: datetime


class ReferrerCount(CamelModel):
    referrer: str
    count: int


class CountryCount(CamelModel):
    country: str
    count: int


class DailyCount(CamelModel):
    date: str  # YYYY-MM-DD
    count: int


class AnalyticsSnapshot(CamelModel):
    """Aggregated click statistics for one short link."""

    short_link: ShortLinkSummary
    total_clicks: int
    raw_events: List[ClickEventSummary] = []
    referrer_stats: List[ReferrerCount] = []
    country_stats: List[CountryCount] = []
    clicks_by_day: List[DailyCount] = []

    def to_cache(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_cache(cls, payload: str) -> "AnalyticsSnapshot":
        return cls.model_validate_json(payload)
