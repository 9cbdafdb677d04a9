"""Custom exceptions for batch uploads."""


class UploadError(Exception):
    """Base exception for the upload service."""
    pass


class StorageFailure(UploadError):
    """Exception raised when an object store put or delete fails."""

    def __init__(self, message: str, *, key: str | None = None, location: str | None = None):
        super().__init__(message)
        self.key = key
        self.location = location


class StorageConflict(StorageFailure):
    """Exception raised when the target key already exists.

    ``after_retry`` is set when an earlier attempt of the same put failed, in
    which case the existing object may be that attempt's own write.
    """

    after_retry: bool = False


class EmptyLocation(StorageFailure):
    """Exception raised when a put reports success without a usable location."""
    pass


class RollbackFailure(UploadError):
    """Exception recorded when a compensating delete fails."""

    def __init__(self, location: str, cause: Exception):
        super().__init__(f"Failed to delete {location}: {cause}")
        self.location = location
        self.cause = cause


class NotificationFailure(UploadError):
    """Exception raised when the reporting service rejects or misses a notification."""

    def __init__(self, message: str, *, path: str, status_code: int | None = None):
        super().__init__(message)
        self.path = path
        self.status_code = status_code
