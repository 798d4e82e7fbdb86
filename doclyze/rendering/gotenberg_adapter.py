import httpx

from doclyze.rendering.base import BaseRenderer, RenderOptions
from doclyze.rendering.exceptions import RenderError
from doclyze.retry.http import request_with_retry
from doclyze.retry.retryable_caller import RetryableCaller

_PAPER_SIZES_INCHES = {
    "a4": (8.27, 11.7),
    "letter": (8.5, 11.0),
}


class GotenbergRenderer(BaseRenderer):
    """Renders HTML to PDF through a Gotenberg (headless Chromium) service."""

    def __init__(self, base_url: str, timeout_seconds: int, caller: RetryableCaller) -> None:
        self._url = base_url.rstrip("/") + "/forms/chromium/convert/html"
        self._timeout_seconds = timeout_seconds
        self._caller = caller

    def render_to_document(self, markup: str, options: RenderOptions | None = None) -> bytes:
        options = options or RenderOptions()
        size = _PAPER_SIZES_INCHES.get(options.paper.lower())
        if size is None:
            raise RenderError(f"Unsupported paper size: {options.paper}")
        width, height = size
        margin = str(options.margin_inches)
        form = {
            "paperWidth": str(width),
            "paperHeight": str(height),
            "marginTop": margin,
            "marginBottom": margin,
            "marginLeft": margin,
            "marginRight": margin,
            "printBackground": "true" if options.print_background else "false",
        }
        files = {"files": ("index.html", markup.encode("utf-8"), "text/html")}
        try:
            with httpx.Client(timeout=self._timeout_seconds) as client:
                response = request_with_retry(
                    client, self._caller, "POST", self._url, data=form, files=files
                )
        except httpx.HTTPError as exc:
            raise RenderError(f"Gotenberg request failed: {exc}") from exc
        if response.status_code != 200:
            raise RenderError(f"Gotenberg rejected the document: HTTP {response.status_code}")
        return response.content
