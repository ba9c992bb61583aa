"""Errors raised by the video library core."""

from fastapi import status


class CatalogError(Exception):
    """Base class for catalog errors that map onto an HTTP response."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    retryable: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CatalogValidationError(CatalogError):
    """Request is missing required data or carries malformed identifiers."""

    status_code = status.HTTP_400_BAD_REQUEST


class AssetNotFoundError(CatalogError):
    """No catalog entry matches the given identifier."""

    status_code = status.HTTP_404_NOT_FOUND


class StorageUnavailableError(CatalogError):
    """Object storage could not be listed; the caller may retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True


class ImportConflictError(CatalogError):
    """The storage key kept changing state while it was being imported; retry."""

    status_code = status.HTTP_409_CONFLICT
    retryable = True
