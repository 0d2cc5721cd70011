"""Tests for the short link repository."""

import uuid
from datetime import timedelta

import pytest

from app.models.link import ShortLinkCreate
from app.models.timestamps import utc_now
from app.repositories.link_repository import (
    DuplicateEntityError,
    EntityNotFoundError,
    OwnershipError,
    ShortLinkRepository,
)
from tests.utils import create_test_link, random_url


@pytest.mark.repository
class TestShortLinkRepository:
    """Test suite for short link repository."""

    @pytest.fixture
    def link_repository(self):
        """Return short link repository instance."""
        return ShortLinkRepository()

    @pytest.mark.asyncio
    async def test_create_short_link(self, test_db, link_repository):
        """Test link creation."""
        test_url = random_url()

        link = await link_repository.create_short_link(
            db=test_db,
            data=ShortLinkCreate(original_url=test_url, short_code="testcreate", owner_id="owner-1"),
        )

        assert link.id is not None
        assert link.original_url == test_url
        assert link.clicks == 0
        assert link.deleted_at is None

        db_link = await link_repository.get_by_short_code(test_db, "testcreate")
        assert db_link is not None
        assert db_link.id == link.id
        assert db_link.owner_id == "owner-1"

    @pytest.mark.asyncio
    async def test_create_duplicate_short_code(self, test_db, link_repository):
        """Test duplicate live short code handling."""
        await create_test_link(test_db, short_code="duplicate")

        with pytest.raises(DuplicateEntityError) as excinfo:
            await link_repository.create_short_link(
                test_db,
                {"original_url": random_url(), "short_code": "duplicate", "owner_id": "owner-2"},
            )

        assert excinfo.value.field_name == "short_code"
        assert excinfo.value.value == "duplicate"

    @pytest.mark.asyncio
    async def test_code_reusable_after_soft_delete(self, test_db, link_repository):
        """A soft-deleted link does not hold on to its code."""
        await create_test_link(test_db, short_code="recycled", deleted_at=utc_now())

        link = await link_repository.create_short_link(
            test_db,
            {"original_url": "https://example.com/new", "short_code": "recycled", "owner_id": "owner-1"},
        )

        found = await link_repository.get_by_short_code(test_db, "recycled")
        assert found.id == link.id
        assert found.original_url == "https://example.com/new"

    @pytest.mark.asyncio
    async def test_get_by_short_code_nonexistent(self, test_db, link_repository):
        """Test retrieving nonexistent link."""
        assert await link_repository.get_by_short_code(test_db, "nonexistent") is None

    @pytest.mark.asyncio
    async def test_deleted_links_are_hidden(self, test_db, link_repository):
        """Soft-deleted rows only appear when explicitly requested."""
        deleted = await create_test_link(test_db, short_code="gone", deleted_at=utc_now())

        assert await link_repository.get_by_short_code(test_db, "gone") is None
        assert await link_repository.get_link_id_by_short_code(test_db, "gone") is None
        assert await link_repository.get_live_by_id(test_db, deleted.id) is None
        assert not await link_repository.short_code_exists(test_db, "gone")

        found = await link_repository.get_by_short_code(test_db, "gone", include_deleted=True)
        assert found is not None
        assert found.id == deleted.id

    @pytest.mark.asyncio
    async def test_get_link_id_by_short_code(self, test_db, link_repository):
        link = await create_test_link(test_db, short_code="idlookup")

        assert await link_repository.get_link_id_by_short_code(test_db, "idlookup") == link.id

    @pytest.mark.asyncio
    async def test_get_by_owner_pagination(self, test_db, link_repository):
        """Owner listing is newest first and excludes deleted and foreign links."""
        now = utc_now()
        codes = []
        for i in range(5):
            link = await create_test_link(
                test_db,
                short_code=f"own{i}",
                created_at=now - timedelta(minutes=i),
            )
            codes.append(link.short_code)
        await create_test_link(test_db, short_code="ownDel", deleted_at=now)
        await create_test_link(test_db, short_code="foreign", owner_id="owner-2")

        first_page, total = await link_repository.get_by_owner(test_db, "owner-1", limit=2, offset=0)
        last_page, _ = await link_repository.get_by_owner(test_db, "owner-1", limit=2, offset=4)

        assert total == 5
        assert [link.short_code for link in first_page] == codes[:2]
        assert [link.short_code for link in last_page] == codes[4:]

    @pytest.mark.asyncio
    async def test_get_by_owner_empty(self, test_db, link_repository):
        links, total = await link_repository.get_by_owner(test_db, "nobody", limit=10)

        assert links == []
        assert total == 0

    @pytest.mark.asyncio
    async def test_soft_delete(self, test_db, link_repository):
        """Test soft deletion by the owner."""
        link = await create_test_link(test_db, short_code="delme")

        deleted = await link_repository.soft_delete(test_db, link.id, "owner-1")

        assert deleted.deleted_at is not None
        assert deleted.is_deleted
        assert await link_repository.get_by_short_code(test_db, "delme") is None

        # A second delete finds nothing live
        with pytest.raises(EntityNotFoundError):
            await link_repository.soft_delete(test_db, link.id, "owner-1")

    @pytest.mark.asyncio
    async def test_soft_delete_wrong_owner(self, test_db, link_repository):
        link = await create_test_link(test_db, short_code="notyours")

        with pytest.raises(OwnershipError):
            await link_repository.soft_delete(test_db, link.id, "owner-2")

        assert await link_repository.get_by_short_code(test_db, "notyours") is not None

    @pytest.mark.asyncio
    async def test_soft_delete_unknown_id(self, test_db, link_repository):
        with pytest.raises(EntityNotFoundError):
            await link_repository.soft_delete(test_db, uuid.uuid4(), "owner-1")

    @pytest.mark.asyncio
    async def test_get_clicks(self, test_db, link_repository):
        link = await create_test_link(test_db, short_code="counted", clicks=4)

        assert await link_repository.get_clicks(test_db, link.id) == 4
        assert await link_repository.get_clicks(test_db, uuid.uuid4()) is None
