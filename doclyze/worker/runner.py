import threading
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor

from doclyze.domain.models import Document, ProcessingState
from doclyze.logging.logger import Log
from doclyze.preparation.state_machine import ProcessingStateMachine


class PreparationRunner:
    """Runs ``advance`` for documents on a bounded thread pool.

    Distinct documents prepare concurrently. A document already in flight in
    this process is not submitted again; across processes the state machine's
    compare-and-set keeps ingestion single.
    """

    def __init__(self, state_machine: ProcessingStateMachine, max_workers: int) -> None:
        self._state_machine = state_machine
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="doclyze-prepare"
        )
        self._in_flight: set[int] = set()
        self._lock = threading.Lock()

    def dispatch(self, documents: Iterable[Document]) -> int:
        """Submit PENDING documents that are not already running. Returns the count."""
        submitted = 0
        for document in documents:
            if document.processing_state is not ProcessingState.PENDING:
                continue
            with self._lock:
                if document.id in self._in_flight:
                    continue
                self._in_flight.add(document.id)
            future = self._executor.submit(self._state_machine.advance, document)
            future.add_done_callback(lambda f, doc_id=document.id: self._done(doc_id, f))
            submitted += 1
        if submitted:
            Log.info(f"Dispatched {submitted} document(s) for preparation")
        return submitted

    @property
    def in_flight(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _done(self, document_id: int, future: Future[None]) -> None:
        with self._lock:
            self._in_flight.discard(document_id)
        exc = future.exception()
        if exc is not None:
            Log.error(f"Preparation task for document {document_id} crashed: {exc}")
