"""Redirect access logging using Loguru's enqueued sinks."""

import os
from datetime import datetime, timezone
from typing import Optional

from loguru import logger

from app.core.config import settings

ACCESS_EVENT_TYPE = "url_access"
# Registered by app.core.logging.setup_logging
ACCESS_LEVEL = "REQUEST"

url_access_logger = None
_sink_ids = []


def _is_access_record(record) -> bool:
    return record["extra"].get("event_type") == ACCESS_EVENT_TYPE


def setup_url_logging():
    """Install the access-log sinks once and return the bound logger.

    Application sinks are left untouched; access records are routed to
    their own files by the ``event_type`` filter.
    """
    global url_access_logger

    if url_access_logger is not None:
        return url_access_logger

    os.makedirs(settings.LOG_DIR, exist_ok=True)

    _sink_ids.append(logger.add(
        os.path.join(settings.LOG_DIR, "url_access.log"),
        format=(
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | IP:{extra[ip]} | "
            "Code:{extra[short_code]} | Source:{extra[source]} | {message}"
        ),
        rotation=settings.LOG_ROTATION,
        retention=settings.LOG_RETENTION,
        enqueue=True,
        level=ACCESS_LEVEL,
        backtrace=False,
        diagnose=False,
        filter=_is_access_record,
    ))
    _sink_ids.append(logger.add(
        os.path.join(settings.LOG_DIR, "url_access.json"),
        serialize=True,
        rotation=settings.LOG_ROTATION,
        retention=settings.LOG_RETENTION,
        enqueue=True,
        level=ACCESS_LEVEL,
        filter=_is_access_record,
    ))

    url_access_logger = logger.bind(event_type=ACCESS_EVENT_TYPE)
    return url_access_logger


def teardown_url_logging() -> None:
    """Remove the access-log sinks, flushing their queues."""
    global url_access_logger

    while _sink_ids:
        sink_id = _sink_ids.pop()
        try:
            logger.remove(sink_id)
        except ValueError:
            # Already removed by a later setup_logging() call
            continue
    url_access_logger = None


def log_url_access(
    short_code: str,
    ip_address: Optional[str],
    user_agent: Optional[str] = None,
    source: str = "database",
) -> None:
    """
    Record one served redirect.

    Args:
        short_code: The short code that was resolved
        ip_address: The client's IP address
        user_agent: Optional user agent string
        source: Where the destination came from, "cache" or "database"
    """
    access_logger = url_access_logger or setup_url_logging()
    access_logger.bind(
        ip=ip_address or "-",
        short_code=short_code,
        user_agent=user_agent or "",
        source=source,
        timestamp=datetime.now(timezone.utc).isoformat(),
    ).log(ACCESS_LEVEL, f"Redirect served: {short_code}")
