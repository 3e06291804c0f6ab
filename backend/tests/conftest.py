"""Shared test fixtures."""

import sys
from pathlib import Path
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from mare_website.database import ensure_schema
from mare_website.models import Breed, Mare

from tests.fixtures.factories import create_mare


@pytest.fixture
async def db_engine():
    """Create in-memory SQLite engine for tests."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        future=True,
    )

    await ensure_schema(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create async session with transaction rollback."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def test_mare(db_session: AsyncSession) -> Mare:
    """Create a sample mare for testing."""
    mare = create_mare(name="Misty", breed=Breed.PEGASUS)
    db_session.add(mare)
    await db_session.commit()
    await db_session.refresh(mare)
    return mare


@pytest.fixture
async def test_mares(db_session: AsyncSession) -> list[Mare]:
    """Create a small herd of mares."""
    mares = []
    mare_data = [
        ("Applejack", Breed.EARTH),
        ("Rainbow Dash", Breed.PEGASUS),
        ("Rarity", Breed.UNICORN),
        ("Fluttershy", Breed.PEGASUS),
        ("Twilight Sparkle", Breed.UNICORN),
        ("Pinkie Pie", Breed.EARTH),
        ("Derpy", Breed.PEGASUS),
        ("Lyra", Breed.UNICORN),
    ]
    for name, breed in mare_data:
        mare = create_mare(name=name, breed=breed)
        db_session.add(mare)
        mares.append(mare)
    await db_session.commit()
    for mare in mares:
        await db_session.refresh(mare)
    return mares
