import mimetypes
import os
import tempfile
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from doclyze.backend.base import BaseAIBackend
from doclyze.backend.exceptions import BackendUnavailableError
from doclyze.backend.models import FileHandle
from doclyze.domain.models import Document
from doclyze.logging.logger import Log
from doclyze.preparation.exceptions import IngestError
from doclyze.storage.base import BaseObjectStorage
from doclyze.storage.locator import strip_locator_prefix

ProgressCallback = Callable[[int], None]


@dataclass(frozen=True)
class SyncSummary:
    """Outcome counts of warming the local cache for a project."""

    synced: int = 0
    skipped: int = 0
    errors: int = 0


class DocumentIngestor:
    """Moves documents from object storage into the AI backend's file registry."""

    def __init__(
        self,
        storage: BaseObjectStorage,
        backend: BaseAIBackend | None,
        cache_dir: Path,
    ) -> None:
        self._storage = storage
        self._backend = backend
        self._cache_dir = cache_dir

    @property
    def backend_available(self) -> bool:
        return self._backend is not None

    def cache_path(self, document: Document) -> Path:
        """Local working-copy path of a document, keyed by its bare storage key."""
        if not document.storage_locator:
            raise IngestError(f"Document {document.id} has no storage locator")
        key = strip_locator_prefix(document.storage_locator)
        path = (self._cache_dir / key).resolve()
        if not path.is_relative_to(self._cache_dir.resolve()):
            raise IngestError(f"Document {document.id} key escapes the cache: {key}")
        return path

    def ensure_local_copy(self, document: Document) -> Path:
        """Return the working copy path, downloading it on cache miss.

        Raises:
            IngestError: if the document has no locator.
            StorageError: if the download fails.
        """
        path = self.cache_path(document)
        if path.is_file():
            Log.debug(f"Cache hit for document {document.id}: {path}")
            return path
        Log.info(f"Downloading document {document.id} from {document.storage_locator}")
        data = self._storage.download(document.storage_locator)  # type: ignore[arg-type]
        _write_atomically(path, data)
        return path

    def register_with_backend(
        self,
        document: Document,
        local_path: Path,
        on_progress: ProgressCallback | None = None,
    ) -> FileHandle:
        """Upload the working copy to the AI backend's file registry.

        Raises:
            BackendUnavailableError: if no backend is configured.
            BackendError: if the upload fails.
        """
        if self._backend is None:
            raise BackendUnavailableError("AI backend is not configured")
        mime_type = document.mime_type or mimetypes.guess_type(document.file_name)[0]
        handle = self._backend.register_file(
            local_path.read_bytes(),
            mime_type or "application/octet-stream",
            document.file_name,
        )
        if on_progress is not None:
            on_progress(100)
        Log.info(f"Registered document {document.id} as {handle.name} ({handle.state.value})")
        return handle

    def sync_project(self, documents: Iterable[Document]) -> SyncSummary:
        """Warm the local cache for every document that has a locator.

        A failure on one document is counted and logged; the rest still sync.
        """
        synced = skipped = errors = 0
        for document in documents:
            if not document.storage_locator:
                continue
            try:
                if self.cache_path(document).is_file():
                    skipped += 1
                    continue
                self.ensure_local_copy(document)
                synced += 1
            except Exception as exc:
                Log.error(f"Failed to sync document {document.id} ({document.file_name}): {exc}")
                errors += 1
        Log.info(f"Sync complete. Synced: {synced}, Skipped: {skipped}, Errors: {errors}")
        return SyncSummary(synced=synced, skipped=skipped, errors=errors)

    def cleanup(self, local_path: Path) -> None:
        """Remove a working copy; failures are logged only."""
        try:
            local_path.unlink(missing_ok=True)
        except OSError as exc:
            Log.warning(f"Failed to clean up {local_path}: {exc}")


def _write_atomically(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
