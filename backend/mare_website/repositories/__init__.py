"""Data access repositories."""

from mare_website.repositories.base import BaseRepository
from mare_website.repositories.mare_repository import MareRepository

__all__ = [
    "BaseRepository",
    "MareRepository",
]
