"""One-way progress channel between a long-running producer and one consumer.

The producer emits any number of status events followed by exactly one
terminal event (complete or error). Anything emitted after the terminal event
is dropped. The consumer iterates ``events()`` and stops after the terminal
event. A consumer that goes away calls ``disconnect()``; the producer keeps
running and its later sends are silently discarded.
"""

import queue
import threading
from collections.abc import Iterator

from doclyze.logging.logger import Log
from doclyze.progress.events import (
    CompleteEvent,
    ErrorEvent,
    ProgressEvent,
    StatusEvent,
    is_terminal,
)


class ProgressReporter:
    """Thread-safe single-producer, single-consumer event channel."""

    def __init__(self, label: str = "") -> None:
        self._label = label
        self._queue: queue.Queue[ProgressEvent] = queue.Queue()
        self._lock = threading.Lock()
        self._terminal: ProgressEvent | None = None
        self._disconnected = False

    @property
    def terminal_event(self) -> ProgressEvent | None:
        return self._terminal

    @property
    def is_closed(self) -> bool:
        return self._terminal is not None

    def status(self, text: str) -> None:
        self._emit(StatusEvent(text=text))

    def complete(self, locator: str) -> None:
        self._emit(CompleteEvent(locator=locator))

    def error(self, message: str) -> None:
        self._emit(ErrorEvent(message=message))

    def ensure_terminal(self, fallback_message: str) -> None:
        """Emit an error unless a terminal event was already sent."""
        with self._lock:
            if self._terminal is not None:
                return
        Log.error(f"[{self._label}] producer ended without a terminal event")
        self.error(fallback_message)

    def disconnect(self) -> None:
        """Mark the consumer as gone; further sends are dropped."""
        with self._lock:
            self._disconnected = True
        Log.info(f"[{self._label}] progress consumer disconnected")

    def events(self, timeout: float | None = None) -> Iterator[ProgressEvent]:
        """Yield events in emission order, ending with the terminal one.

        Raises:
            TimeoutError: if no event arrives within ``timeout`` seconds.
        """
        while True:
            try:
                event = self._queue.get(timeout=timeout)
            except queue.Empty as exc:
                raise TimeoutError(f"No progress event within {timeout}s") from exc
            yield event
            if is_terminal(event):
                return

    def _emit(self, event: ProgressEvent) -> None:
        with self._lock:
            if self._terminal is not None:
                Log.warning(f"[{self._label}] dropped {type(event).__name__} after terminal event")
                return
            if is_terminal(event):
                self._terminal = event
            if self._disconnected:
                Log.debug(f"[{self._label}] consumer gone, dropped {type(event).__name__}")
                return
            self._queue.put(event)
