from dataclasses import dataclass

from doclyze.storage.exceptions import InvalidLocatorError

_SEPARATOR = "://"


@dataclass(frozen=True)
class StorageLocator:
    """Parsed ``scheme://bucket/key`` object address."""

    scheme: str
    bucket: str
    key: str

    @classmethod
    def parse(cls, locator: str) -> "StorageLocator":
        """Split a locator into its parts.

        Raises:
            InvalidLocatorError: if scheme, bucket or key is missing.
        """
        scheme, separator, rest = locator.partition(_SEPARATOR)
        bucket, slash, key = rest.partition("/")
        if not separator or not scheme or not bucket or not slash or not key:
            raise InvalidLocatorError(f"Invalid storage locator: {locator!r}")
        return cls(scheme=scheme, bucket=bucket, key=key)

    def __str__(self) -> str:
        return f"{self.scheme}{_SEPARATOR}{self.bucket}/{self.key}"


def strip_locator_prefix(locator: str) -> str:
    """Return the bare object key of a locator; bare keys pass through unchanged."""
    if _SEPARATOR not in locator:
        return locator.lstrip("/")
    return StorageLocator.parse(locator).key
