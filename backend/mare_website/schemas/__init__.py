"""Pydantic schemas."""

from mare_website.schemas.common import BaseSchema
from mare_website.schemas.mare import (
    MareCreate,
    MareImageResponse,
    MareListResponse,
    MareResponse,
    MareUpdate,
)

__all__ = [
    # Common
    "BaseSchema",
    # Mare
    "MareCreate",
    "MareUpdate",
    "MareResponse",
    "MareListResponse",
    "MareImageResponse",
]
