from pathlib import Path

from doclyze.logging.logger import Log
from doclyze.storage.base import BaseObjectStorage
from doclyze.storage.exceptions import InvalidLocatorError, ObjectNotFoundError, StorageError
from doclyze.storage.locator import StorageLocator

SCHEME = "file"


class LocalDiskStorage(BaseObjectStorage):
    """Object storage backed by a directory tree: ``<root>/<bucket>/<key>``."""

    def __init__(self, root: Path, bucket: str) -> None:
        self._root = root.resolve()
        self._bucket = bucket

    def download(self, locator: str) -> bytes:
        path = self._path_for(locator)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise ObjectNotFoundError(f"No object at {locator}") from exc
        except OSError as exc:
            raise StorageError(f"Failed to read {locator}: {exc}") from exc

    def upload(self, data: bytes, locator: str, content_type: str) -> None:
        path = self._path_for(locator)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to write {locator}: {exc}") from exc
        Log.debug(f"Stored {len(data)} bytes ({content_type}) at {locator}")

    def issue_signed_url(self, locator: str, ttl_seconds: int) -> str:
        path = self._path_for(locator)
        if not path.is_file():
            raise ObjectNotFoundError(f"No object at {locator}")
        return path.as_uri()

    def locator_for(self, key: str) -> str:
        return str(StorageLocator(scheme=SCHEME, bucket=self._bucket, key=key))

    def _path_for(self, locator: str) -> Path:
        parsed = StorageLocator.parse(locator)
        if parsed.scheme != SCHEME:
            raise InvalidLocatorError(f"Unsupported scheme for local storage: {locator}")
        path = (self._root / parsed.bucket / parsed.key).resolve()
        if not path.is_relative_to(self._root):
            raise InvalidLocatorError(f"Locator escapes the storage root: {locator}")
        return path
