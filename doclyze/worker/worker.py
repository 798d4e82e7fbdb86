import time
from collections.abc import Callable

from doclyze.config.settings import Settings
from doclyze.database.repositories.document_repository import DocumentRepository
from doclyze.domain.models import Document
from doclyze.logging.logger import Log
from doclyze.worker.runner import PreparationRunner


class Worker:
    """Poll loop: fail stale documents -> find pending documents -> dispatch -> sleep."""

    def __init__(
        self,
        document_repo: DocumentRepository,
        runner: PreparationRunner,
        settings: Settings,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._document_repo = document_repo
        self._runner = runner
        self._settings = settings
        self._sleep = sleep

    def run(self, max_cycles: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_cycles is set, stop after that many polls (for testing).
        """
        Log.info("Worker started, polling for pending documents")
        cycles = 0
        try:
            while max_cycles is None or cycles < max_cycles:
                cycles += 1
                self._fail_stale()
                documents = self._find_pending()
                if documents:
                    self._runner.dispatch(documents)
                else:
                    Log.debug("No pending documents, sleeping")
                self._sleep(self._settings.worker_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")
        finally:
            self._runner.shutdown(wait=True)

    @property
    def stale_after_seconds(self) -> float:
        """Never shorter than twice the activation polling window."""
        window = (
            self._settings.activation_poll_interval_seconds * self._settings.activation_max_polls
        )
        return float(max(self._settings.stale_processing_seconds, 2 * window))

    def _fail_stale(self) -> None:
        """Fail documents stuck in PROCESSING after a crash or a lost final write."""
        try:
            failed = self._document_repo.fail_stale_processing(self.stale_after_seconds)
        except Exception as exc:
            Log.warning(f"Stale sweep failed, will retry: {exc}")
            return
        if failed:
            Log.warning(f"Marked stale PROCESSING documents FAILED: {failed}")

    def _find_pending(self) -> list[Document]:
        """Fetch the next batch of PENDING documents. Gracefully handle DB errors."""
        try:
            return self._document_repo.find_pending(self._settings.preparation_batch_size)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return []
