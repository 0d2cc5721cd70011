"""Background click tracking.

Redirect handlers hand visits to a ClickTracker and return immediately.
Worker tasks record each visit in its own transaction; a failure is logged
and counted, never raised back to the request that produced the visit.
"""

import asyncio
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.db.base import get_session
from app.db.session import SessionManager
from app.repositories.base import EntityNotFoundError, RepositoryError
from app.repositories.click_repository import ClickEventRepository
from app.repositories.link_repository import ShortLinkRepository
from app.services.exceptions import TrackingFailedError


@dataclass
class ClickVisit:
    """Metadata of one redirect, captured before the response is sent.

    The visit carries no timestamp: ``clicked_at`` is set when the event row
    is inserted.
    """

    short_code: str
    short_link_id: Optional[uuid.UUID] = None
    referrer: Optional[str] = None
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None

    def event_data(self) -> Dict[str, Optional[str]]:
        return {
            "referrer": _truncate(self.referrer, 2048),
            "user_agent": _truncate(self.user_agent, 1024),
            "ip_address": _truncate(self.ip_address, 45),
            "country": self.country,
            "city": self.city,
        }


def _truncate(value: Optional[str], length: int) -> Optional[str]:
    return value[:length] if value else value


class ClickTracker:
    """
    Queue-backed dispatcher for click recording.

    ``submit`` never awaits, so enqueuing a visit cannot delay a redirect.
    Outcomes are reported through ``stats`` and the log:

    - ``submitted``: visits accepted by ``submit``
    - ``recorded``: visits committed to the store
    - ``skipped``: visits whose code no longer resolves to a live link
    - ``failed``: visits whose transaction failed
    - ``dropped``: visits rejected because the queue was full
    """

    def __init__(
        self,
        link_repository: Optional[ShortLinkRepository] = None,
        click_repository: Optional[ClickEventRepository] = None,
        workers: Optional[int] = None,
        max_queue_size: Optional[int] = None,
    ):
        self.link_repository = link_repository or ShortLinkRepository()
        self.click_repository = click_repository or ClickEventRepository()
        self.worker_count = workers or settings.TRACKING_WORKERS
        self.max_queue_size = max_queue_size or settings.TRACKING_QUEUE_SIZE
        self._queue: Optional[asyncio.Queue] = None
        self._workers: List[asyncio.Task] = []
        self.stats = {"submitted": 0, "recorded": 0, "skipped": 0, "failed": 0, "dropped": 0}

    @property
    def is_running(self) -> bool:
        return bool(self._workers) and not all(task.done() for task in self._workers)

    @property
    def queue_depth(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    def start(self) -> None:
        """Spawn the worker tasks on the running event loop."""
        if self.is_running:
            return
        self._queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._workers = [
            asyncio.create_task(self._worker(), name=f"click-tracker-{index}")
            for index in range(self.worker_count)
        ]
        logger.info(f"Click tracker started with {self.worker_count} worker(s)")

    def submit(self, visit: ClickVisit) -> bool:
        """
        Enqueue a visit for recording without waiting.

        Returns:
            bool: False if the queue was full and the visit was dropped
        """
        if not self.is_running:
            self.start()

        self.stats["submitted"] += 1
        try:
            self._queue.put_nowait(visit)
            return True
        except asyncio.QueueFull:
            self.stats["dropped"] += 1
            logger.warning(
                "TrackingFailed: click queue full, visit dropped",
                short_code=visit.short_code,
                queue_size=self.max_queue_size,
            )
            return False

    async def join(self) -> None:
        """Wait until every submitted visit has been processed."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self, timeout: Optional[float] = None) -> None:
        """Drain the queue within ``timeout`` seconds, then cancel the workers."""
        if not self._workers:
            return

        timeout = settings.TRACKING_SHUTDOWN_TIMEOUT if timeout is None else timeout
        try:
            await asyncio.wait_for(self.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Click tracker stopped with {self.queue_depth} visit(s) unrecorded")

        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._queue = None
        logger.info("Click tracker stopped", **self.stats)

    async def _worker(self) -> None:
        while True:
            visit = await self._queue.get()
            try:
                await self.record(visit)
            except TrackingFailedError as e:
                logger.bind(
                    short_code=visit.short_code,
                    short_link_id=str(visit.short_link_id) if visit.short_link_id else None,
                ).error(f"TrackingFailed: {e}")
            except Exception:
                # Keep the worker alive for the next visit
                self.stats["failed"] += 1
                logger.exception(f"TrackingFailed: unexpected error for {visit.short_code}")
            finally:
                self._queue.task_done()

    async def record(self, visit: ClickVisit) -> bool:
        """
        Record one visit: counter increment and click event, atomically.

        Returns:
            bool: True if recorded, False if the link is gone

        Raises:
            TrackingFailedError: If the store failed; nothing was committed
        """
        try:
            short_link_id = visit.short_link_id or await self._lookup_link_id(visit.short_code)
            if short_link_id is None:
                self.stats["skipped"] += 1
                logger.debug(f"Skipping click for {visit.short_code}: no live short link")
                return False

            async with SessionManager.transaction_context() as db:
                await self.click_repository.record_click(db, short_link_id, visit.event_data())
        except EntityNotFoundError:
            self.stats["skipped"] += 1
            logger.debug(f"Skipping click for {visit.short_code}: short link was deleted")
            return False
        except (RepositoryError, SQLAlchemyError) as e:
            self.stats["failed"] += 1
            raise TrackingFailedError(f"Could not record click for '{visit.short_code}': {e}") from e

        self.stats["recorded"] += 1
        return True

    async def _lookup_link_id(self, short_code: str) -> Optional[uuid.UUID]:
        async with get_session() as db:
            return await self.link_repository.get_link_id_by_short_code(db, short_code)


# Shared tracker started with the application
click_tracker = ClickTracker()
