"""Tests for the cache service."""

import uuid
from datetime import datetime

import pytest

from app.models.analytics import AnalyticsSnapshot, ReferrerCount, ShortLinkSummary
from app.services.cache import CacheService, analytics_key, url_key


def make_snapshot(link_id: uuid.UUID) -> AnalyticsSnapshot:
    return AnalyticsSnapshot(
        short_link=ShortLinkSummary(
            id=link_id,
            short_code="abc1234",
            original_url="https://example.com/page",
            full_short_url="http://localhost:8000/api/url/abc1234",
            clicks=2,
            created_at=datetime(2024, 5, 1, 12, 0),
        ),
        total_clicks=2,
        referrer_stats=[ReferrerCount(referrer="https://a.example", count=2)],
    )


@pytest.mark.service
class TestCacheService:
    """Test suite for the Redis-backed cache."""

    def test_key_namespaces(self):
        link_id = uuid.uuid4()
        assert url_key("abc1234") == "url:abc1234"
        assert analytics_key(link_id) == f"analytics:{link_id}"

    @pytest.mark.asyncio
    async def test_url_roundtrip_with_ttl(self, cache_service, mock_redis):
        assert await cache_service.set_url("abc1234", "https://example.com/page") is True

        assert await cache_service.get_url("abc1234") == "https://example.com/page"
        assert mock_redis.expiry["url:abc1234"] == 3600

    @pytest.mark.asyncio
    async def test_custom_ttl(self, mock_redis):
        cache = CacheService(client=mock_redis, default_ttl=60, enabled=True)

        await cache.set_url("abc1234", "https://example.com")

        assert mock_redis.expiry["url:abc1234"] == 60

    @pytest.mark.asyncio
    async def test_delete_url(self, cache_service, mock_redis):
        await cache_service.set_url("abc1234", "https://example.com/page")

        assert await cache_service.delete_url("abc1234") is True
        assert await cache_service.get_url("abc1234") is None
        assert "url:abc1234" not in mock_redis.data

    @pytest.mark.asyncio
    async def test_analytics_snapshot_roundtrip(self, cache_service, mock_redis):
        link_id = uuid.uuid4()
        snapshot = make_snapshot(link_id)

        await cache_service.set_analytics(link_id, snapshot)

        assert '"totalClicks":2' in mock_redis.data[f"analytics:{link_id}"]
        assert await cache_service.get_analytics(link_id) == snapshot

    @pytest.mark.asyncio
    async def test_unreadable_analytics_entry_is_a_miss(self, cache_service, mock_redis):
        link_id = uuid.uuid4()
        mock_redis.data[f"analytics:{link_id}"] = '{"not": "a snapshot"}'

        assert await cache_service.get_analytics(link_id) is None
        assert f"analytics:{link_id}" not in mock_redis.data

    @pytest.mark.asyncio
    async def test_fails_open(self, failing_redis):
        """Transport errors become misses and failed writes, never exceptions."""
        cache = CacheService(client=failing_redis, enabled=True)
        link_id = uuid.uuid4()

        assert await cache.get_url("abc1234") is None
        assert await cache.set_url("abc1234", "https://example.com") is False
        assert await cache.delete_url("abc1234") is False
        assert await cache.get_analytics(link_id) is None
        assert await cache.set_analytics(link_id, make_snapshot(link_id)) is False
        assert failing_redis.calls == 5

    @pytest.mark.asyncio
    async def test_disabled_cache_never_touches_redis(self, mock_redis):
        cache = CacheService(client=mock_redis, enabled=False)

        assert await cache.set_url("abc1234", "https://example.com") is False
        assert await cache.get_url("abc1234") is None
        assert mock_redis.data == {}
