"""Mare API routes."""

from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from mare_website.database import get_db
from mare_website.fetchers import DataFetcher, DerpibooruFetcher
from mare_website.schemas import (
    MareCreate,
    MareImageResponse,
    MareListResponse,
    MareResponse,
    MareUpdate,
)
from mare_website.services import MareService

router = APIRouter(prefix="/mares", tags=["mares"])


async def get_image_fetcher() -> AsyncGenerator[DataFetcher, None]:
    """Dependency for an image fetcher that is closed after the request."""
    async with DerpibooruFetcher() as fetcher:
        yield fetcher


@router.get("", response_model=MareListResponse)
async def get_mares(
    after_id: int | None = Query(None, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """Get mares ordered by id, one page at a time."""
    service = MareService(db)
    mares, total = await service.list_mares(after_id=after_id, limit=limit)
    next_after_id = mares[-1].id if len(mares) == limit else None
    return MareListResponse(items=mares, total=total, next_after_id=next_after_id)


@router.get("/{mare_id}", response_model=MareResponse)
async def get_mare(
    mare_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get a mare by ID."""
    service = MareService(db)
    return await service.get_mare(mare_id)


@router.post("", response_model=MareResponse, status_code=201)
async def create_mare(
    data: MareCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a new mare."""
    service = MareService(db)
    return await service.create_mare(data.name, data.breed)


@router.put("/{mare_id}", response_model=MareResponse)
async def update_mare(
    mare_id: int,
    data: MareUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update a mare."""
    service = MareService(db)
    return await service.update_mare(
        mare_id,
        name=data.name,
        breed=data.breed,
        expected_modified_at=data.expected_modified_at,
    )


@router.delete("/{mare_id}", status_code=204)
async def delete_mare(
    mare_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Delete a mare."""
    service = MareService(db)
    await service.delete_mare(mare_id)
    return Response(status_code=204)


@router.get("/{mare_id}/image", response_model=MareImageResponse)
async def get_mare_image(
    mare_id: int,
    db: AsyncSession = Depends(get_db),
    fetcher: DataFetcher = Depends(get_image_fetcher),
):
    """Find a random image of a mare by its name."""
    service = MareService(db)
    return await service.find_image(mare_id, fetcher)
