"""Naive UTC timestamps shared by the table models."""
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current UTC time without tzinfo, the form every timestamp column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
