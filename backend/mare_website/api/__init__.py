"""API routers."""

from mare_website.api.mares import router as mares_router

__all__ = [
    "mares_router",
]
