"""Business logic services."""

from mare_website.services.mare_service import MareService

__all__ = [
    "MareService",
]
