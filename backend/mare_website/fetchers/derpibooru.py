"""Derpibooru image search fetcher."""

import httpx
import structlog

from mare_website.config import get_settings
from mare_website.exceptions import UpstreamError
from mare_website.fetchers.base import DataFetcher, ImageInfo

logger = structlog.get_logger(__name__)

settings = get_settings()


class DerpibooruFetcher(DataFetcher):
    """Looks up a random, well-rated image for a mare by name."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        search_url: str | None = None,
        min_score: int | None = None,
    ):
        super().__init__(client)
        self.search_url = search_url or settings.image_search_url
        self.min_score = settings.image_min_score if min_score is None else min_score

    def build_query(self, name: str) -> str:
        """Search tags for a mare name."""
        return f"score.gte:{self.min_score}, {name}, pony, mare, !irl"

    async def fetch_image(self, name: str) -> ImageInfo | None:
        """
        Fetch one random image tagged with the mare's name.

        Returns:
            ImageInfo or None if the search has no hits

        Raises:
            UpstreamError: the search service failed or answered garbage
        """
        params = {"per_page": "1", "sf": "random", "q": self.build_query(name)}

        try:
            response = await self.client.get(self.search_url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            logger.warning("image_search_failed", mare_name=name, error=str(exc))
            raise UpstreamError(f"Image search failed: {exc}") from exc
        except ValueError as exc:
            raise UpstreamError("Image search returned invalid JSON.") from exc

        if not isinstance(payload, dict):
            raise UpstreamError("Image search returned an unexpected payload.")

        images = payload.get("images") or []
        if not images:
            return None

        image = images[0]
        try:
            return ImageInfo(
                image_id=int(image["id"]),
                url=image["representations"]["medium"],
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamError("Image search returned an unexpected payload.") from exc
