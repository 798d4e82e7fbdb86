from typing import Any

import httpx

from doclyze.retry.retryable_caller import OnRetry, RetryableCaller


def request_with_retry(
    client: httpx.Client,
    caller: RetryableCaller,
    method: str,
    url: str,
    *,
    max_attempts: int | None = None,
    on_retry: OnRetry | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """Send an HTTP request, retrying 5xx responses and transport errors.

    Successful and 4xx responses are returned as-is; the caller decides what a
    client error means.

    Raises:
        httpx.HTTPStatusError: when every attempt ended in a 5xx response.
        httpx.TransportError: when every attempt failed at the transport level.
    """

    def attempt() -> httpx.Response:
        response = client.request(method, url, **kwargs)
        if response.status_code >= 500:
            response.raise_for_status()
        return response

    return caller.call(attempt, max_attempts=max_attempts, on_retry=on_retry)
