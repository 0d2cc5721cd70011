"""Tests for repository error handling."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.repositories.base import DuplicateEntityError, RepositoryError
from app.repositories.click_repository import ClickEventRepository
from app.repositories.link_repository import ShortLinkRepository
from tests.utils import create_test_link, random_url


@pytest.mark.repository
class TestRepositoryErrorHandling:
    """Tests for error handling in repositories."""

    @pytest.fixture
    def link_repository(self):
        return ShortLinkRepository()

    @pytest.fixture
    def click_repository(self):
        return ClickEventRepository()

    @pytest.mark.asyncio
    async def test_database_error_handling(self, test_db, link_repository):
        """SQLAlchemy errors surface as RepositoryError with the cause chained."""
        with patch.object(test_db, "execute", side_effect=SQLAlchemyError("Test database error")):
            with pytest.raises(RepositoryError) as excinfo:
                await link_repository.get_by_short_code(test_db, "errortest")

        assert "Test database error" in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, SQLAlchemyError)

    @pytest.mark.asyncio
    async def test_owner_listing_error(self, test_db, link_repository):
        with patch.object(test_db, "execute", side_effect=SQLAlchemyError("boom")):
            with pytest.raises(RepositoryError):
                await link_repository.get_by_owner(test_db, "owner-1", limit=10)

    @pytest.mark.asyncio
    async def test_insert_race_becomes_duplicate(self, test_db, link_repository):
        """A collision the existence check missed is still reported as a duplicate."""
        await create_test_link(test_db, short_code="racing")

        with patch.object(link_repository, "short_code_exists", AsyncMock(return_value=False)):
            with pytest.raises(DuplicateEntityError) as excinfo:
                await link_repository.create_short_link(
                    test_db,
                    {"original_url": random_url(), "short_code": "racing", "owner_id": "owner-2"},
                )

        assert isinstance(excinfo.value.__cause__, IntegrityError)

    @pytest.mark.asyncio
    async def test_record_click_error(self, test_db, click_repository):
        link = await create_test_link(test_db)

        with patch.object(test_db, "execute", side_effect=SQLAlchemyError("write failed")):
            with pytest.raises(RepositoryError) as excinfo:
                await click_repository.record_click(test_db, link.id, {})

        assert "write failed" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_exists_requires_conditions(self, test_db, link_repository):
        with pytest.raises(ValueError):
            await link_repository.exists(test_db)
