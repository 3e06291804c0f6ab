"""Shared fixtures for API integration tests."""

from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from mare_website.api.mares import get_image_fetcher
from mare_website.database import get_db
from mare_website.fetchers import DataFetcher, ImageInfo
from mare_website.main import app


class FakeImageFetcher(DataFetcher):
    """Image fetcher that never leaves the process."""

    def __init__(self):
        self.image: ImageInfo | None = ImageInfo(image_id=7, url="https://img/7.png")

    async def fetch_image(self, name: str) -> ImageInfo | None:
        return self.image

    async def close(self):
        pass


@pytest.fixture
def image_fetcher() -> FakeImageFetcher:
    return FakeImageFetcher()


@pytest.fixture(scope="function")
async def client(db_session, image_fetcher) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API tests."""

    # Create a dependency override that uses the test session
    async def get_test_db():
        yield db_session

    async def get_test_fetcher():
        yield image_fetcher

    app.dependency_overrides[get_db] = get_test_db
    app.dependency_overrides[get_image_fetcher] = get_test_fetcher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Clean up override
    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_image_fetcher, None)
