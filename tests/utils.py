"""Test utilities for short-link service tests."""

import random
import string
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from app.models.click import ClickEvent
from app.models.link import ShortLink
from app.models.timestamps import utc_now


def random_string(length: int = 10) -> str:
    """Generate a random alphanumeric string."""
    return ''.join(random.choice(string.ascii_letters + string.digits) for _ in range(length))


def random_url() -> str:
    """Generate a random URL for testing."""
    domain = f"{random_string(8).lower()}.com"
    path = random_string(12)
    return f"https://{domain}/{path}"


def create_test_link_data(
    original_url: Optional[str] = None,
    short_code: Optional[str] = None,
    owner_id: str = "owner-1",
    clicks: int = 0,
    created_at: Optional[datetime] = None,
    deleted_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Create test data dict for a ShortLink."""
    data = {
        "original_url": original_url or random_url(),
        "short_code": short_code or random_string(7),
        "owner_id": owner_id,
        "clicks": clicks,
        "deleted_at": deleted_at,
    }
    if created_at is not None:
        data["created_at"] = created_at
    return data


async def create_test_link(db, commit: bool = True, **kwargs) -> ShortLink:
    """Create and persist a test ShortLink in the database."""
    link = ShortLink(**create_test_link_data(**kwargs))
    db.add(link)
    await db.flush()
    if commit:
        await db.commit()
    await db.refresh(link)
    return link


async def create_test_click(
    db,
    short_link_id: uuid.UUID,
    referrer: Optional[str] = None,
    country: Optional[str] = None,
    clicked_at: Optional[datetime] = None,
    commit: bool = True,
) -> ClickEvent:
    """Create and persist a ClickEvent without touching the link counter."""
    event = ClickEvent(
        short_link_id=short_link_id,
        referrer=referrer,
        country=country,
        user_agent="pytest",
        ip_address="127.0.0.1",
        clicked_at=clicked_at or utc_now(),
    )
    db.add(event)
    await db.flush()
    if commit:
        await db.commit()
    await db.refresh(event)
    return event
