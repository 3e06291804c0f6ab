"""Mare model."""

from datetime import datetime

from sqlalchemy import Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from mare_website.database import Base
from mare_website.models.types import UTCDateTime

NAME_MAX_LENGTH = 100

# mares.breed is a 32-bit integer column
BREED_MIN = -(2**31)
BREED_MAX = 2**31 - 1


class Mare(Base):
    """Mare table model."""

    __tablename__ = "mares"
    # Never hand out the id of a deleted row again on SQLite
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)
    breed: Mapped[int] = mapped_column(Integer, nullable=False)
    modified_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Mare(id={self.id}, name='{self.name}', breed={self.breed})>"
