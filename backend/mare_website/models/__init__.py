"""SQLAlchemy models."""

from mare_website.models.breed import Breed, breed_label
from mare_website.models.mare import Mare

__all__ = [
    "Mare",
    "Breed",
    "breed_label",
]
