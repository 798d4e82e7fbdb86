from abc import ABC, abstractmethod


class BaseObjectStorage(ABC):
    """Contract for object storage adapters."""

    @abstractmethod
    def download(self, locator: str) -> bytes:
        """Fetch the bytes stored at a locator.

        Raises:
            ObjectNotFoundError: if nothing is stored there.
            StorageError: on any other failure.
        """

    @abstractmethod
    def upload(self, data: bytes, locator: str, content_type: str) -> None:
        """Store bytes at a locator, replacing any previous object."""

    @abstractmethod
    def issue_signed_url(self, locator: str, ttl_seconds: int) -> str:
        """Return a URL granting temporary read access to the object."""

    @abstractmethod
    def locator_for(self, key: str) -> str:
        """Build the full locator of a key in this adapter's bucket."""
