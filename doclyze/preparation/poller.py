import time
from collections.abc import Callable

from doclyze.backend.base import BaseAIBackend
from doclyze.backend.models import FileHandle, RemoteFileState
from doclyze.logging.logger import Log


class ActivationPoller:
    """Waits for a registered file to leave the PROCESSING state."""

    def __init__(
        self,
        backend: BaseAIBackend,
        poll_interval_seconds: float = 5.0,
        max_attempts: int = 24,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._backend = backend
        self._poll_interval_seconds = poll_interval_seconds
        self._max_attempts = max_attempts
        self._sleep = sleep

    def poll_until_terminal(
        self,
        handle: FileHandle,
        poll_interval: float | None = None,
        max_attempts: int | None = None,
    ) -> RemoteFileState:
        """Poll every ``poll_interval`` seconds until the file is ACTIVE or FAILED.

        Fetch errors are tolerated and polled again on the next interval. When
        the attempt ceiling is reached while still processing (or still
        erroring), the result is FAILED.
        """
        interval = self._poll_interval_seconds if poll_interval is None else poll_interval
        ceiling = self._max_attempts if max_attempts is None else max_attempts
        state = handle.state
        attempts = 0
        Log.info(f"Waiting for {handle.name} (initial state: {state.value}), polling every {interval}s")

        while state is RemoteFileState.PROCESSING and attempts < ceiling:
            attempts += 1
            self._sleep(interval)
            try:
                state = self._backend.get_file(handle.name).state
                Log.debug(f"Polled {handle.name}: {state.value} (attempt {attempts}/{ceiling})")
            except Exception as exc:
                Log.warning(f"Error polling {handle.name} (attempt {attempts}/{ceiling}): {exc}")

        if state is RemoteFileState.PROCESSING:
            Log.warning(f"{handle.name} still processing after {attempts} polls, giving up")
            return RemoteFileState.FAILED
        if state is not RemoteFileState.ACTIVE:
            Log.warning(f"{handle.name} did not become ACTIVE. Final state: {state.value}")
        return state
