"""Database connection, session management and schema setup."""

import asyncio
import time
from collections.abc import AsyncGenerator

import structlog
from sqlalchemy import DateTime, Integer, String, event, inspect
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.schema import CreateTable

from mare_website.config import Settings, async_database_url, get_settings
from mare_website.exceptions import SchemaError

logger = structlog.get_logger(__name__)

settings = get_settings()

# Column name -> (type family, nullable allowed)
EXPECTED_MARE_COLUMNS: dict[str, tuple[type, bool]] = {
    "id": (Integer, True),
    "name": (String, False),
    "breed": (Integer, False),
    "modified_at": (DateTime, False),
}

_DDL_DIALECTS = {
    "postgresql": postgresql.dialect,
    "sqlite": sqlite.dialect,
}


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def create_engine_from_settings(config: Settings) -> AsyncEngine:
    """Build the process-wide async engine."""
    url = async_database_url(config.database_url)
    kwargs: dict = {"echo": config.debug, "future": True, "pool_pre_ping": True}

    if url.startswith("postgresql+asyncpg://"):
        kwargs["pool_size"] = config.db_pool_size
        kwargs["pool_timeout"] = config.db_connect_timeout
        kwargs["connect_args"] = {
            "timeout": config.db_connect_timeout,
            "command_timeout": config.db_command_timeout,
        }
    elif url.startswith("sqlite+aiosqlite://"):
        kwargs["connect_args"] = {"timeout": config.db_command_timeout}

    engine = create_async_engine(url, **kwargs)
    install_slow_query_logging(engine, config.db_slow_query_threshold)
    return engine


def install_slow_query_logging(engine: AsyncEngine, threshold: float) -> None:
    """Warn about statements that run longer than ``threshold`` seconds."""

    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def _start_timer(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_start_time", []).append(time.perf_counter())

    @event.listens_for(engine.sync_engine, "after_cursor_execute")
    def _check_elapsed(conn, cursor, statement, parameters, context, executemany):
        started = conn.info["query_start_time"].pop()
        elapsed = time.perf_counter() - started
        if elapsed >= threshold:
            logger.warning(
                "slow_query",
                statement=statement,
                elapsed_seconds=round(elapsed, 3),
            )


# Async engine and session
async_engine = create_engine_from_settings(settings)

AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def check_mares_columns(columns: dict[str, dict], dialect_name: str) -> None:
    """
    Check reflected ``mares`` columns against the expected shape.

    ``columns`` maps column names to the dicts returned by
    ``Inspector.get_columns``.
    """
    for name, (type_family, nullable_allowed) in EXPECTED_MARE_COLUMNS.items():
        column = columns.get(name)
        if column is None:
            raise SchemaError(f"Relation 'mares' has no '{name}' column.")

        if not isinstance(column["type"], type_family):
            raise SchemaError(
                f"Column 'mares.{name}' has type {column['type']!r}, "
                f"expected {type_family.__name__}."
            )

        if column["nullable"] and not nullable_allowed:
            raise SchemaError(f"Column 'mares.{name}' must be NOT NULL.")

    length = getattr(columns["name"]["type"], "length", None)
    if length is not None and length < 100:
        raise SchemaError(
            f"Column 'mares.name' holds {length} characters, expected at least 100."
        )

    # SQLite has no zoned timestamp type; UTCDateTime stores UTC there
    if dialect_name == "postgresql" and not columns["modified_at"]["type"].timezone:
        raise SchemaError("Column 'mares.modified_at' must be TIMESTAMP WITH TIME ZONE.")


def _verify_mares_table(conn: Connection) -> None:
    """Check that the existing ``mares`` relation matches the expected shape."""
    inspector = inspect(conn)
    if not inspector.has_table("mares"):
        raise SchemaError("Relation 'mares' is missing after schema creation.")

    columns = {column["name"]: column for column in inspector.get_columns("mares")}
    check_mares_columns(columns, conn.dialect.name)


async def ensure_schema(engine: AsyncEngine | None = None) -> None:
    """
    Create the ``mares`` relation if it is absent and verify its shape.

    Safe to call on every startup. Raises SchemaError when the database
    cannot be reached or the relation exists with an incompatible shape.
    """
    # Register the models on Base.metadata
    from mare_website.models import Mare  # noqa: F401

    engine = engine or async_engine

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            await conn.run_sync(_verify_mares_table)
    except SchemaError:
        logger.error("schema_incompatible", exc_info=True)
        raise
    except (SQLAlchemyError, OSError, asyncio.TimeoutError) as exc:
        logger.error("schema_unavailable", error=str(exc))
        raise SchemaError(f"Cannot initialize schema: {exc}") from exc

    logger.info("schema_ready", table="mares")


def schema_ddl(dialect: str = "postgresql") -> str:
    """Render the CREATE TABLE statement for the ``mares`` relation."""
    from mare_website.models import Mare

    try:
        dialect_factory = _DDL_DIALECTS[dialect]
    except KeyError:
        raise ValueError(f"Unsupported dialect: {dialect}") from None

    ddl = CreateTable(Mare.__table__, if_not_exists=True)
    return str(ddl.compile(dialect=dialect_factory())).strip() + ";"
