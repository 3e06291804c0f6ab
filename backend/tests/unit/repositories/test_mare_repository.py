"""Tests for mare repository."""

import pytest

from mare_website.repositories.mare_repository import MareRepository


class TestMareRepository:
    """Tests for MareRepository specialized queries."""

    @pytest.mark.asyncio
    async def test_get_for_update(self, db_session, test_mare):
        """Locked read returns the same record."""
        repo = MareRepository(db_session)

        mare = await repo.get_for_update(test_mare.id)

        assert mare is not None
        assert mare.id == test_mare.id

    @pytest.mark.asyncio
    async def test_get_for_update_nonexistent(self, db_session):
        """Locked read of a missing id returns None."""
        repo = MareRepository(db_session)

        assert await repo.get_for_update(99999) is None

    @pytest.mark.asyncio
    async def test_get_page_first(self, db_session, test_mares):
        """First page starts at the lowest id."""
        repo = MareRepository(db_session)

        page = await repo.get_page(limit=3)

        assert [m.id for m in page] == [m.id for m in test_mares[:3]]

    @pytest.mark.asyncio
    async def test_get_page_after_id(self, db_session, test_mares):
        """Pages continue strictly after the given id."""
        repo = MareRepository(db_session)

        page = await repo.get_page(after_id=test_mares[5].id, limit=5)

        assert [m.name for m in page] == ["Derpy", "Lyra"]

    @pytest.mark.asyncio
    async def test_get_page_past_end(self, db_session, test_mares):
        """Paging past the last id returns empty list."""
        repo = MareRepository(db_session)

        page = await repo.get_page(after_id=test_mares[-1].id)

        assert page == []

    @pytest.mark.asyncio
    async def test_stream_all_ordered_by_id(self, db_session, test_mares):
        """Streaming yields every mare in id order."""
        repo = MareRepository(db_session)

        streamed = [mare async for mare in repo.stream_all()]

        ids = [m.id for m in streamed]
        assert ids == sorted(ids)
        assert len(streamed) == len(test_mares)

    @pytest.mark.asyncio
    async def test_stream_all_empty(self, db_session):
        """Streaming an empty table yields nothing."""
        repo = MareRepository(db_session)

        streamed = [mare async for mare in repo.stream_all()]

        assert streamed == []

    @pytest.mark.asyncio
    async def test_ids_not_reused_after_delete(self, db_session):
        """Deleting the newest mare does not free its id."""
        repo = MareRepository(db_session)

        first = await repo.create({"name": "First", "breed": 0})
        await repo.delete(first.id)
        second = await repo.create({"name": "Second", "breed": 0})

        assert second.id > first.id
