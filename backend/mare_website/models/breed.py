"""Known breed identifiers."""

import enum


class Breed(enum.IntEnum):
    """Breed ids with a display name.

    ``mares.breed`` is an opaque integer without a backing table, so values
    outside this enum are stored as-is and simply have no label.
    """

    EARTH = 0
    PEGASUS = 1
    UNICORN = 2

    @property
    def label(self) -> str:
        return self.name.capitalize()


def breed_label(value: int) -> str | None:
    """Display name for a breed id, or None when the id is unknown."""
    try:
        return Breed(value).label
    except ValueError:
        return None
