"""Test fixtures for the short-link service."""

import os
import tempfile

# The application reads its settings at import time
_TEST_DIR = tempfile.mkdtemp(prefix="shortlink-tests-")
os.environ["ENVIRONMENT"] = "testing"
os.environ["DEBUG"] = "false"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["LOG_DIR"] = os.path.join(_TEST_DIR, "logs")
os.environ["CACHE_ENABLED"] = "true"
os.environ["TRACKING_WORKERS"] = "1"
os.environ["DB_RECONNECT_DELAY"] = "0"

from typing import AsyncGenerator, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from app.api.dependencies import get_cache_service, get_click_tracker
from app.core.security import create_access_token
from app.core.url_logger import teardown_url_logging
from app.db.base import async_session_factory, engine
from app.main import app as main_app
# Import models to ensure they're registered with SQLModel metadata
from app.models.link import ShortLink
from app.models.click import ClickEvent
from app.services.cache import CacheService
from app.services.tracker import ClickTracker

OWNER_ID = "owner-1"
OTHER_OWNER_ID = "owner-2"


class MockRedis:
    """In-process stand-in for the async Redis client."""

    def __init__(self):
        self.data = {}
        self.expiry = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        if ex:
            self.expiry[key] = ex
        return True

    async def delete(self, key):
        if key in self.data:
            del self.data[key]
            self.expiry.pop(key, None)
            return 1
        return 0

    async def exists(self, key):
        return key in self.data

    async def ping(self):
        return True

    async def aclose(self):
        pass

    def flushall(self):
        self.data.clear()
        self.expiry.clear()


class FailingRedis:
    """Redis client whose every call fails at the transport."""

    def __init__(self):
        self.calls = 0

    async def _fail(self, *args, **kwargs):
        self.calls += 1
        raise RedisConnectionError("Connection refused")

    get = set = delete = exists = ping = _fail


@pytest_asyncio.fixture
async def test_engine():
    """Create the schema on the test database for one test."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)


@pytest_asyncio.fixture
async def test_db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Session on the test database.

    Tests commit their own data: the click tracker writes through separate
    sessions and must see it.
    """
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture
def mock_redis():
    """Mock Redis for testing."""
    return MockRedis()


@pytest.fixture
def failing_redis():
    """Redis that is unreachable."""
    return FailingRedis()


@pytest.fixture
def cache_service(mock_redis) -> CacheService:
    return CacheService(client=mock_redis, enabled=True)


@pytest_asyncio.fixture
async def click_tracker(test_engine) -> AsyncGenerator[ClickTracker, None]:
    """Tracker with a single worker, stopped after the test."""
    tracker = ClickTracker(workers=1)
    yield tracker
    await tracker.stop(timeout=5)


@pytest_asyncio.fixture
async def client(test_engine, cache_service, click_tracker) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app, with the mock cache and a test tracker."""
    main_app.dependency_overrides[get_cache_service] = lambda: cache_service
    main_app.dependency_overrides[get_click_tracker] = lambda: click_tracker

    async with AsyncClient(transport=ASGITransport(app=main_app), base_url="http://test") as test_client:
        yield test_client

    main_app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(OWNER_ID)}"}


@pytest.fixture
def other_auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(OTHER_OWNER_ID)}"}


@pytest.fixture(scope="session", autouse=True)
def access_log_sinks():
    """Flush and remove the enqueued access-log sinks after the run."""
    yield
    teardown_url_logging()
