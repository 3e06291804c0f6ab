"""Base data fetcher."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from mare_website.config import get_settings

settings = get_settings()


@dataclass
class ImageInfo:
    """Image information from external source."""

    image_id: int
    url: str


class DataFetcher(ABC):
    """Base class for external data fetchers."""

    def __init__(self, client: httpx.AsyncClient | None = None):
        self.client = client or httpx.AsyncClient(
            headers={"User-Agent": settings.user_agent},
            timeout=settings.image_timeout,
            follow_redirects=True,
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @abstractmethod
    async def fetch_image(self, name: str) -> ImageInfo | None:
        """Fetch an image matching a mare name."""
        pass
