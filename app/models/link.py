"""Short link data models.

This module defines the ShortLink table and its create schema.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, Text, text
from sqlmodel import Field, SQLModel

from app.models.timestamps import utc_now

LIVE_ROWS = text("deleted_at IS NULL")
OWNER_ID_MAX_LENGTH = 64


class ShortLinkBase(SQLModel):
    """Fields supplied when a short link is created."""

    original_url: str = Field(
        sa_type=Text,
        description="The absolute URI visitors are redirected to"
    )
    short_code: str = Field(
        index=True,
        max_length=32,
        description="Code used in the redirect path"
    )
    owner_id: str = Field(
        index=True,
        max_length=OWNER_ID_MAX_LENGTH,
        description="Opaque id of the owning account"
    )


class ShortLink(ShortLinkBase, table=True):
    """
    Mapping from a short code to its destination.

    ``clicks`` only changes through the atomic tracking update. A non-null
    ``deleted_at`` hides the row from every repository query unless the
    caller asks for deleted rows explicitly.
    """

    __tablename__ = "short_links"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    clicks: int = Field(default=0, nullable=False)
    # Timestamps are naive UTC
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(), nullable=False)
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(),
        sa_column_kwargs={"onupdate": utc_now},
        nullable=False,
    )
    deleted_at: Optional[datetime] = Field(default=None, sa_type=DateTime(), index=True)

    __table_args__ = (
        # A code is unique among live rows; soft-deleted rows keep theirs
        Index(
            "uq_short_links_live_short_code",
            "short_code",
            unique=True,
            postgresql_where=LIVE_ROWS,
            sqlite_where=LIVE_ROWS,
        ),
        Index("ix_short_links_owner_created", "owner_id", "created_at"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class ShortLinkCreate(ShortLinkBase):
    """Schema for creating a short link."""
    pass

