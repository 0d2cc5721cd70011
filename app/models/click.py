"""
Click event data models.

One ClickEvent row is written per tracked visit, in the same transaction
that increments the owning link's counter.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index
from sqlmodel import Field, SQLModel

from app.models.timestamps import utc_now


class ClickEventBase(SQLModel):
    """Visit metadata captured from the redirect request."""

    referrer: Optional[str] = Field(
        default=None,
        max_length=2048,
        description="Referer header of the visit"
    )
    user_agent: Optional[str] = Field(
        default=None,
        max_length=1024,
        description="User agent string of the visitor's browser/device"
    )
    ip_address: Optional[str] = Field(
        default=None,
        max_length=45,  # IPv6 textual form
        description="Client address, first X-Forwarded-For entry when present"
    )
    country: Optional[str] = Field(default=None, max_length=64)
    city: Optional[str] = Field(default=None, max_length=128)


class ClickEvent(ClickEventBase, table=True):
    """
    Immutable record of a single visit.

    The link is referenced by id only; events are queried on demand and
    removed by the database when their link row is removed.
    """

    __tablename__ = "click_events"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    short_link_id: uuid.UUID = Field(
        foreign_key="short_links.id",
        ondelete="CASCADE",
        nullable=False,
    )
    clicked_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(), nullable=False)

    __table_args__ = (
        Index("ix_click_events_short_link_id_clicked_at", "short_link_id", "clicked_at"),
    )


class ClickEventCreate(ClickEventBase):
    """Schema for creating a click event."""
    short_link_id: uuid.UUID

