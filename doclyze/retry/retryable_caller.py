"""Bounded retry with exponential backoff around flaky remote calls.

Errors are classified as retryable (rate limits, 5xx, transport failures) or
terminal (safety rejections, malformed input, bad credentials). Terminal
errors are re-raised at once; retryable ones are attempted again after
``base_delay * 2^(k-2)`` seconds before attempt k, until the attempt ceiling.
"""

import time
from collections.abc import Callable, Iterator
from typing import TypeVar

import httpx
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from doclyze.backend.exceptions import (
    StreamInterruptedError,
    TerminalBackendError,
    TransientBackendError,
)
from doclyze.logging.logger import Log

T = TypeVar("T")

OnRetry = Callable[[int, int], None]

_RETRYABLE_PATTERNS = ("RESOURCE_EXHAUSTED", "500", "503", "network error", "fetch failed", "rate limit")
_TERMINAL_PATTERNS = ("SAFETY", "400 Bad Request")


def is_retryable(exc: BaseException) -> bool:
    """Classify an error as retryable (True) or terminal (False)."""
    if isinstance(exc, (TerminalBackendError, StreamInterruptedError)):
        return False
    if isinstance(exc, (TransientBackendError, httpx.TransportError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code == 429 or exc.response.status_code >= 500
    message = str(exc)
    if any(pattern in message for pattern in _TERMINAL_PATTERNS):
        return False
    lowered = message.lower()
    return any(pattern.lower() in lowered for pattern in _RETRYABLE_PATTERNS)


def _check_attempts(max_attempts: int) -> int:
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    return max_attempts


class RetryableCaller:
    """Runs zero-argument operations under a bounded retry policy."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._max_attempts = _check_attempts(max_attempts)
        self._base_delay_seconds = base_delay_seconds
        self._sleep = sleep

    def call(
        self,
        operation: Callable[[], T],
        max_attempts: int | None = None,
        on_retry: OnRetry | None = None,
        retry_if: Callable[[BaseException], bool] = is_retryable,
    ) -> T:
        """Return the first successful result of ``operation``.

        ``on_retry(attempt, max_attempts)`` runs before each backoff sleep with
        the number of the attempt that just failed. ``retry_if`` replaces the
        default error classification.

        Raises:
            ValueError: if ``max_attempts`` is given and below 1.
            Exception: the last error, once attempts are exhausted or as soon
                as a terminal error is seen.
        """
        attempts = self._max_attempts if max_attempts is None else _check_attempts(max_attempts)
        return self._retrying(attempts, on_retry, retry_if)(operation)

    def call_stream(
        self,
        start: Callable[[], Iterator[str]],
        max_attempts: int | None = None,
        on_retry: OnRetry | None = None,
    ) -> Iterator[str]:
        """Retry only the initiation of a stream.

        Once ``start`` has returned an iterator, chunk failures propagate to the
        consumer unchanged.
        """
        return self.call(start, max_attempts=max_attempts, on_retry=on_retry)

    def _retrying(
        self,
        max_attempts: int,
        on_retry: OnRetry | None,
        retry_if: Callable[[BaseException], bool],
    ) -> Retrying:
        def before_sleep(retry_state: RetryCallState) -> None:
            attempt = retry_state.attempt_number
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            Log.warning(
                f"Attempt {attempt}/{max_attempts} failed: {exc}. "
                f"Retrying in {retry_state.upcoming_sleep:.1f}s"
            )
            if on_retry is not None:
                on_retry(attempt, max_attempts)

        return Retrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=self._base_delay_seconds, exp_base=2, min=0),
            retry=retry_if_exception(retry_if),
            before_sleep=before_sleep,
            sleep=self._sleep,
            reraise=True,
        )
