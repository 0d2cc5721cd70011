"""
Data models for the short-link service.

Table models are imported here so that ``SQLModel.metadata`` knows about
both tables wherever this package is imported.
"""

from sqlmodel import SQLModel

from app.models.link import (
    ShortLink,
    ShortLinkBase,
    ShortLinkCreate,
)
from app.models.click import (
    ClickEvent,
    ClickEventBase,
    ClickEventCreate,
)
from app.models.timestamps import utc_now
from app.models.analytics import (
    AnalyticsSnapshot,
    CamelModel,
    ClickEventSummary,
    CountryCount,
    DailyCount,
    ReferrerCount,
    ShortLinkSummary,
)

__all__ = [
    "SQLModel",

    # Short link models
    "ShortLink",
    "ShortLinkBase",
    "ShortLinkCreate",

    # Click event models
    "ClickEvent",
    "ClickEventBase",
    "ClickEventCreate",

    # Analytics snapshot
    "AnalyticsSnapshot",
    "CamelModel",
    "ClickEventSummary",
    "CountryCount",
    "DailyCount",
    "ReferrerCount",
    "ShortLinkSummary",

    "utc_now",
]
