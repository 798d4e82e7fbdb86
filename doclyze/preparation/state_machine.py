from pathlib import Path

from doclyze.backend.models import RemoteFileState
from doclyze.database.repositories.document_repository import DocumentRepository
from doclyze.domain.models import (
    Document,
    DocumentStatus,
    ProcessingState,
    Readiness,
    derive_readiness,
)
from doclyze.logging.logger import Log
from doclyze.preparation.ingestor import DocumentIngestor
from doclyze.preparation.poller import ActivationPoller
from doclyze.retry.retryable_caller import RetryableCaller


class ProcessingStateMachine:
    """Owns the PENDING -> PROCESSING -> ACTIVE | FAILED lifecycle of documents.

    Every transition is a compare-and-set in the repository, so a document is
    ingested at most once even when ``advance`` races with itself, and terminal
    states are never overwritten. The final transition is retried; documents
    stranded in PROCESSING anyway are failed by the worker's stale sweep.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        ingestor: DocumentIngestor,
        poller: ActivationPoller | None,
        caller: RetryableCaller | None = None,
    ) -> None:
        self._repository = repository
        self._ingestor = ingestor
        self._poller = poller
        self._caller = caller or RetryableCaller()

    def advance(self, document: Document) -> None:
        """Drive a PENDING document to a terminal state. Never raises."""
        if document.processing_state is not ProcessingState.PENDING:
            Log.info(
                f"Document {document.id} is already {document.processing_state.value}, skipping"
            )
            return

        try:
            claimed = self._repository.transition_state(
                document.id, ProcessingState.PENDING, ProcessingState.PROCESSING
            )
        except Exception as exc:
            Log.error(f"Could not claim document {document.id}, leaving it PENDING: {exc}")
            return
        if not claimed:
            Log.info(f"Document {document.id} was claimed elsewhere, skipping")
            return

        Log.info(f"Preparing document {document.id} ({document.file_name})")
        final_state = ProcessingState.FAILED
        local_path: Path | None = None
        try:
            if not self._ingestor.backend_available or self._poller is None:
                Log.warning(f"AI backend not configured, marking document {document.id} FAILED")
            else:
                local_path = self._ingestor.ensure_local_copy(document)
                handle = self._ingestor.register_with_backend(
                    document,
                    local_path,
                    on_progress=lambda progress: self._record_progress(document.id, progress),
                )
                self._repository.set_remote_handle(document.id, handle.name)
                remote_state = self._poller.poll_until_terminal(handle)
                if remote_state is RemoteFileState.ACTIVE:
                    final_state = ProcessingState.ACTIVE
        except Exception as exc:
            Log.error(f"Preparation of document {document.id} failed: {exc}")
        finally:
            if local_path is not None:
                self._ingestor.cleanup(local_path)

        self._finish(document.id, final_state)

    def readiness(self, project_id: int) -> Readiness:
        statuses = self._repository.list_statuses(project_id)
        return derive_readiness(status.processing_state for status in statuses)

    def list_statuses(self, project_id: int) -> list[DocumentStatus]:
        return self._repository.list_statuses(project_id)

    def _record_progress(self, document_id: int, progress: int) -> None:
        try:
            self._repository.update_activation_progress(document_id, progress)
        except Exception as exc:
            Log.warning(f"Failed to record progress for document {document_id}: {exc}")

    def _finish(self, document_id: int, final_state: ProcessingState) -> None:
        try:
            moved = self._caller.call(
                lambda: self._repository.transition_state(
                    document_id, ProcessingState.PROCESSING, final_state
                ),
                retry_if=lambda exc: isinstance(exc, Exception),
            )
        except Exception as exc:
            Log.error(
                f"Failed to persist {final_state.value} for document {document_id}, "
                f"leaving it to the stale sweep: {exc}"
            )
            return
        if moved:
            Log.info(f"Document {document_id} finished with state {final_state.value}")
        else:
            Log.warning(f"Document {document_id} left PROCESSING elsewhere; {final_state.value} not applied")
