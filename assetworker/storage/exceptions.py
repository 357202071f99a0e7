class StorageError(Exception):
    """Raised when the content store rejects or fails an operation."""


class ContentNotFoundError(StorageError):
    """Raised when no content exists under the requested key."""
