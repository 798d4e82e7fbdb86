class StorageError(Exception):
    """Base exception for object storage failures."""


class InvalidLocatorError(StorageError):
    """Raised when a locator is not of the form scheme://bucket/key."""


class ObjectNotFoundError(StorageError):
    """Raised when no object exists at the requested locator."""
