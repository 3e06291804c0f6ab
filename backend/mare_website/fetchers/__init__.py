"""External data fetchers."""

from mare_website.fetchers.base import DataFetcher, ImageInfo
from mare_website.fetchers.derpibooru import DerpibooruFetcher

__all__ = [
    "DataFetcher",
    "DerpibooruFetcher",
    "ImageInfo",
]
