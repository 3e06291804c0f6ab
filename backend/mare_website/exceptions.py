"""Service-level exceptions."""


class MareWebsiteError(Exception):
    """Base class for all service exceptions."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


# --- Caller errors ---


class ValidationError(MareWebsiteError):
    """Raised when caller-supplied data violates a field constraint."""

    status_code = 422


class NotFoundError(MareWebsiteError):
    """Raised when a referenced record does not exist."""

    status_code = 404


class MareNotFoundError(NotFoundError):
    """Raised when no mare is stored under the given id."""

    def __init__(self, mare_id: int):
        self.mare_id = mare_id
        super().__init__(f"Cannot find record with {mare_id} id.")


class ConflictError(MareWebsiteError):
    """Raised when a record changed since the caller last read it."""

    status_code = 409


# --- Infrastructure errors ---


class StorageError(MareWebsiteError):
    """Raised when the storage engine is unreachable, rejects a query or times out."""

    status_code = 503


class SchemaError(StorageError):
    """Raised when the schema cannot be created or has an incompatible shape."""


class UpstreamError(MareWebsiteError):
    """Raised when an external HTTP service fails or returns nothing usable."""

    status_code = 502
