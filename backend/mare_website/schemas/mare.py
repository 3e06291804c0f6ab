"""Mare schemas."""

from datetime import datetime

from pydantic import Field, StrictInt, computed_field

from mare_website.models import breed_label
from mare_website.models.mare import BREED_MAX, BREED_MIN, NAME_MAX_LENGTH
from mare_website.schemas.common import BaseSchema


class MareBase(BaseSchema):
    """Base mare schema."""

    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH, description="Mare name")
    breed: StrictInt = Field(..., ge=BREED_MIN, le=BREED_MAX, description="Breed id")


class MareCreate(MareBase):
    """Schema for creating a mare."""

    pass


class MareUpdate(BaseSchema):
    """Schema for updating a mare."""

    name: str | None = Field(None, min_length=1, max_length=NAME_MAX_LENGTH)
    breed: StrictInt | None = Field(None, ge=BREED_MIN, le=BREED_MAX)
    # Reject the write if the record changed after this timestamp was read
    expected_modified_at: datetime | None = None


class MareResponse(MareBase):
    """Mare response schema."""

    id: int
    modified_at: datetime

    @computed_field
    @property
    def breed_name(self) -> str | None:
        return breed_label(self.breed)


class MareListResponse(BaseSchema):
    """Mare list response schema."""

    items: list[MareResponse]
    total: int
    next_after_id: int | None = None


class MareImageResponse(BaseSchema):
    """Random image found for a mare's name."""

    mare_id: int
    name: str
    image_id: int
    image_url: str
