"""Mare repository."""

from collections.abc import AsyncIterator

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mare_website.models import Mare
from mare_website.repositories.base import BaseRepository


class MareRepository(BaseRepository[Mare]):
    """Repository for Mare model."""

    def __init__(self, session: AsyncSession):
        super().__init__(Mare, session)

    async def get_for_update(self, mare_id: int) -> Mare | None:
        """Get a mare and lock its row until the transaction ends."""
        result = await self.session.execute(
            select(Mare).where(Mare.id == mare_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_page(self, after_id: int | None = None, limit: int = 100) -> list[Mare]:
        """Get the next ``limit`` mares with an id greater than ``after_id``."""
        query = select(Mare)
        if after_id is not None:
            query = query.where(Mare.id > after_id)

        query = query.order_by(Mare.id).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def stream_all(self) -> AsyncIterator[Mare]:
        """Yield every mare ordered by id without loading them all at once."""
        result = await self.session.stream_scalars(select(Mare).order_by(Mare.id))
        try:
            async for mare in result:
                yield mare
        finally:
            await result.close()
