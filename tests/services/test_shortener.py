"""Tests for the short link service."""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core.config import settings
from app.repositories.base import RepositoryError
from app.repositories.link_repository import ShortLinkRepository
from app.services.cache import CacheService
from app.services.exceptions import (
    ConstraintViolationError,
    ForbiddenError,
    InvalidURLError,
    ShortLinkNotFoundError,
    StoreUnavailableError,
)
from app.services.shortener import ShortLinkService, build_full_short_url
from tests.utils import create_test_link


@pytest.mark.service
class TestShortLinkService:
    """Test suite for link creation, listing and deletion."""

    @pytest.fixture
    def link_repository(self):
        return ShortLinkRepository()

    @pytest.fixture
    def shortener(self, link_repository, cache_service):
        return ShortLinkService(link_repository=link_repository, cache=cache_service)

    @pytest.mark.asyncio
    async def test_create_short_link(self, test_db, shortener, link_repository, mock_redis):
        link = await shortener.create_short_link(test_db, "owner-1", "https://example.com/page")

        assert len(link.short_code) == settings.URL_CODE_LENGTH
        assert set(link.short_code) <= set(settings.URL_CODE_CHARS)
        assert link.owner_id == "owner-1"
        assert link.clicks == 0
        # Persisted and primed in the cache
        assert (await link_repository.get_by_short_code(test_db, link.short_code)).id == link.id
        assert mock_redis.data[f"url:{link.short_code}"] == "https://example.com/page"

    @pytest.mark.asyncio
    async def test_invalid_url_rejected_before_store_access(self, cache_service):
        repository = MagicMock(spec=ShortLinkRepository)
        shortener = ShortLinkService(link_repository=repository, cache=cache_service)
        db = AsyncMock()

        with pytest.raises(InvalidURLError):
            await shortener.create_short_link(db, "owner-1", "not a url")

        assert repository.method_calls == []
        assert db.method_calls == []

    @pytest.mark.asyncio
    async def test_regenerates_once_on_collision(self, test_db, shortener):
        await create_test_link(test_db, short_code="taken01")

        with patch.object(ShortLinkService, "generate_short_code", side_effect=["taken01", "fresh01"]):
            link = await shortener.create_short_link(test_db, "owner-1", "https://example.com")

        assert link.short_code == "fresh01"

    @pytest.mark.asyncio
    async def test_collision_after_retry_is_constraint_violation(self, test_db, shortener, link_repository):
        await create_test_link(test_db, short_code="taken01")

        with patch.object(ShortLinkService, "generate_short_code", side_effect=["taken01", "taken01"]):
            with pytest.raises(ConstraintViolationError):
                await shortener.create_short_link(test_db, "owner-2", "https://example.com")

        links, total = await link_repository.get_by_owner(test_db, "owner-2", limit=10)
        assert total == 0

    @pytest.mark.asyncio
    async def test_store_failure_on_create(self, test_db, shortener, link_repository):
        with patch.object(link_repository, "create_short_link", AsyncMock(side_effect=RepositoryError("down"))):
            with pytest.raises(StoreUnavailableError):
                await shortener.create_short_link(test_db, "owner-1", "https://example.com")

    @pytest.mark.asyncio
    async def test_create_succeeds_without_cache(self, test_db, link_repository, failing_redis):
        shortener = ShortLinkService(link_repository, CacheService(client=failing_redis, enabled=True))

        link = await shortener.create_short_link(test_db, "owner-1", "https://example.com/nocache")

        assert (await link_repository.get_by_short_code(test_db, link.short_code)) is not None

    @pytest.mark.asyncio
    async def test_list_owner_links(self, test_db, shortener):
        for _ in range(3):
            await shortener.create_short_link(test_db, "owner-1", "https://example.com")
        await shortener.create_short_link(test_db, "owner-2", "https://example.com")

        links, pagination = await shortener.list_owner_links(test_db, "owner-1", page=2, limit=2)

        assert len(links) == 1
        assert pagination == {"total": 3, "page": 2, "limit": 2, "totalPages": 2}

    @pytest.mark.asyncio
    async def test_list_owner_links_empty(self, test_db, shortener):
        links, pagination = await shortener.list_owner_links(test_db, "owner-1")

        assert links == []
        assert pagination["totalPages"] == 0
        assert pagination["limit"] == settings.PAGE_SIZE_DEFAULT

    @pytest.mark.asyncio
    async def test_delete_evicts_cache(self, test_db, shortener, link_repository, mock_redis):
        link = await shortener.create_short_link(test_db, "owner-1", "https://example.com/page")
        mock_redis.data[f"analytics:{link.id}"] = "{}"

        deleted = await shortener.delete_short_link(test_db, link.id, "owner-1")

        assert deleted.deleted_at is not None
        assert f"url:{link.short_code}" not in mock_redis.data
        assert f"analytics:{link.id}" not in mock_redis.data
        assert await link_repository.get_by_short_code(test_db, link.short_code) is None

    @pytest.mark.asyncio
    async def test_delete_by_other_owner(self, test_db, shortener, mock_redis):
        link = await shortener.create_short_link(test_db, "owner-1", "https://example.com/page")

        with pytest.raises(ForbiddenError):
            await shortener.delete_short_link(test_db, link.id, "owner-2")

        assert f"url:{link.short_code}" in mock_redis.data

    @pytest.mark.asyncio
    async def test_delete_unknown_link(self, test_db, shortener):
        with pytest.raises(ShortLinkNotFoundError):
            await shortener.delete_short_link(test_db, uuid.uuid4(), "owner-1")

    def test_generate_short_code(self):
        assert len(ShortLinkService.generate_short_code()) == settings.URL_CODE_LENGTH
        assert len(ShortLinkService.generate_short_code(12)) == 12

    def test_build_full_short_url(self):
        assert build_full_short_url("abc1234", "https://sho.rt/u/") == "https://sho.rt/u/abc1234"
        assert build_full_short_url("abc1234") == f"{settings.BASE_URL}/abc1234"

    @pytest.mark.parametrize("url", [
        "https://example.com/page",
        "http://localhost:8000/path?q=1#frag",
        "https://user:pw@sub.example.co.uk:8443/a/b",
        "http://192.168.0.1/",
        "https://[::1]/",
        "ftp://files.example.org/readme.txt",
        "mailto:someone@example.com",
        "urn:isbn:0451450523",
    ])
    def test_valid_urls(self, url):
        assert ShortLinkService.is_valid_url(url)

    @pytest.mark.parametrize("url", [
        "",
        "not a url",
        "example.com",
        "/relative/path",
        "http://",
        "http:///path",
        "https://exa mple.com",
        " https://example.com",
        "https://example.com/\nnext",
        "1http://example.com",
        None,
        "https://example.com/" + "a" * 2048,
    ])
    def test_invalid_urls(self, url):
        assert not ShortLinkService.is_valid_url(url)
