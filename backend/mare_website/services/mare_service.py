"""Mare record service."""

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing, asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mare_website.exceptions import (
    ConflictError,
    MareNotFoundError,
    MareWebsiteError,
    StorageError,
    UpstreamError,
    ValidationError,
)
from mare_website.fetchers import DataFetcher
from mare_website.models.mare import BREED_MAX, BREED_MIN, NAME_MAX_LENGTH
from mare_website.repositories import MareRepository
from mare_website.schemas import MareImageResponse, MareResponse

logger = structlog.get_logger(__name__)

STORAGE_FAILURES = (SQLAlchemyError, OSError, asyncio.TimeoutError)

_OUTCOME_LEVELS = {
    "success": "info",
    "invalid": "warning",
    "not_found": "warning",
    "conflict": "warning",
    "storage_error": "error",
    "upstream_error": "error",
}


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def validate_name(name: Any) -> str:
    """Return ``name`` if it is a usable mare name, else raise ValidationError."""
    if not isinstance(name, str):
        raise ValidationError("Mare name must be a string.")
    if not name.strip():
        raise ValidationError("Mare name must not be empty.")
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(
            f"Mare name must be at most {NAME_MAX_LENGTH} characters, got {len(name)}."
        )
    return name


def validate_breed(breed: Any) -> int:
    """Return ``breed`` if it fits the breed column, else raise ValidationError."""
    if breed is None:
        raise ValidationError("Mare breed is required.")
    if isinstance(breed, bool) or not isinstance(breed, int):
        raise ValidationError("Mare breed must be an integer.")
    if not BREED_MIN <= breed <= BREED_MAX:
        raise ValidationError(f"Mare breed {breed} is out of range.")
    return breed


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class MareService:
    """
    Create, read, update and delete mare records.

    Every call goes to the database; nothing is cached between calls.
    Each operation emits one ``mare_operation`` log event.
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.mare_repo = MareRepository(session)
        self.clock = clock

    async def create_mare(self, name: Any, breed: Any) -> MareResponse:
        """Create a new mare. ``id`` and ``modified_at`` come from the database."""
        try:
            data = {"name": validate_name(name), "breed": validate_breed(breed)}
        except ValidationError as exc:
            self._log("create", "invalid", reason=exc.message)
            raise

        async with self._storage("create"):
            mare = await self.mare_repo.create(data)
            await self.session.commit()

        self._log("create", "success", mare_id=mare.id)
        return MareResponse.model_validate(mare)

    async def get_mare(self, mare_id: int) -> MareResponse:
        """Get a mare by ID."""
        async with self._storage("get", mare_id):
            mare = await self.mare_repo.get(mare_id)
            if mare is None:
                self._log("get", "not_found", mare_id=mare_id)
                raise MareNotFoundError(mare_id)

        self._log("get", "success", mare_id=mare_id)
        return MareResponse.model_validate(mare)

    async def iter_mares(self) -> AsyncIterator[MareResponse]:
        """
        Lazily yield every mare ordered by id.

        The ``list`` event is logged when the iterator finishes or is closed
        early, with the number of mares yielded so far.
        """
        count = 0
        complete = False
        failed = False
        try:
            async with self._storage("list"):
                async with aclosing(self.mare_repo.stream_all()) as mares:
                    async for mare in mares:
                        count += 1
                        yield MareResponse.model_validate(mare)
            complete = True
        except StorageError:
            # Already logged as storage_error
            failed = True
            raise
        finally:
            if not failed:
                self._log("list", "success", count=count, complete=complete)

    async def list_mares(
        self,
        after_id: int | None = None,
        limit: int = 100,
    ) -> tuple[list[MareResponse], int]:
        """Get one page of mares ordered by id, plus the total count."""
        async with self._storage("list"):
            mares = await self.mare_repo.get_page(after_id=after_id, limit=limit)
            total = await self.mare_repo.count()

        self._log("list", "success", count=len(mares), after_id=after_id)
        return [MareResponse.model_validate(m) for m in mares], total

    async def update_mare(
        self,
        mare_id: int,
        name: Any = None,
        breed: Any = None,
        expected_modified_at: datetime | None = None,
    ) -> MareResponse:
        """
        Update the supplied fields of a mare and advance ``modified_at``.

        Without ``expected_modified_at`` the last committed write wins.
        With it, the update is refused if the stored record has a different
        ``modified_at``.
        """
        data: dict[str, Any] = {}
        try:
            if name is not None:
                data["name"] = validate_name(name)
            if breed is not None:
                data["breed"] = validate_breed(breed)
        except ValidationError as exc:
            self._log("update", "invalid", mare_id=mare_id, reason=exc.message)
            raise

        async with self._storage("update", mare_id):
            mare = await self.mare_repo.get_for_update(mare_id)
            if mare is None:
                self._log("update", "not_found", mare_id=mare_id)
                raise MareNotFoundError(mare_id)

            if (
                expected_modified_at is not None
                and _as_utc(expected_modified_at) != mare.modified_at
            ):
                self._log("update", "conflict", mare_id=mare_id)
                raise ConflictError(
                    f"Record with {mare_id} id was modified at "
                    f"{mare.modified_at.isoformat()}, it cannot be saved."
                )

            changed = sorted(data)
            data["modified_at"] = max(self.clock(), mare.modified_at)
            mare = await self.mare_repo.apply(mare, data)
            await self.session.commit()

        self._log("update", "success", mare_id=mare_id, fields=changed)
        return MareResponse.model_validate(mare)

    async def delete_mare(self, mare_id: int) -> None:
        """Delete a mare."""
        async with self._storage("delete", mare_id):
            deleted = await self.mare_repo.delete(mare_id)
            if not deleted:
                self._log("delete", "not_found", mare_id=mare_id)
                raise MareNotFoundError(mare_id)
            await self.session.commit()

        self._log("delete", "success", mare_id=mare_id)

    async def find_image(self, mare_id: int, fetcher: DataFetcher) -> MareImageResponse:
        """Find a random image for a mare by its name."""
        async with self._storage("image", mare_id):
            mare = await self.mare_repo.get(mare_id)
            if mare is None:
                self._log("image", "not_found", mare_id=mare_id)
                raise MareNotFoundError(mare_id)

        try:
            image = await fetcher.fetch_image(mare.name)
        except UpstreamError as exc:
            self._log("image", "upstream_error", mare_id=mare_id, reason=exc.message)
            raise

        if image is None:
            self._log("image", "upstream_error", mare_id=mare_id, reason="no_images")
            raise UpstreamError(f'Cannot find images by "{mare.name}" name.')

        self._log("image", "success", mare_id=mare_id, image_id=image.image_id)
        return MareImageResponse(
            mare_id=mare.id,
            name=mare.name,
            image_id=image.image_id,
            image_url=image.url,
        )

    @asynccontextmanager
    async def _storage(self, operation: str, mare_id: int | None = None):
        """Roll back on failure and turn driver errors into StorageError."""
        try:
            yield
        except MareWebsiteError:
            await self._rollback()
            raise
        except STORAGE_FAILURES as exc:
            await self._rollback()
            self._log(operation, "storage_error", mare_id=mare_id, error=str(exc))
            raise StorageError(f"Storage failure during {operation}: {exc}") from exc

    async def _rollback(self) -> None:
        try:
            await self.session.rollback()
        except STORAGE_FAILURES:
            logger.warning("rollback_failed", exc_info=True)

    def _log(
        self,
        operation: str,
        outcome: str,
        mare_id: int | None = None,
        **fields: Any,
    ) -> None:
        log = getattr(logger, _OUTCOME_LEVELS[outcome])
        log(
            "mare_operation",
            operation=operation,
            mare_id=mare_id,
            outcome=outcome,
            **fields,
        )
