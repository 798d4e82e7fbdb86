from doclyze.config.settings import Settings
from doclyze.rendering.base import BaseRenderer
from doclyze.rendering.gotenberg_adapter import GotenbergRenderer
from doclyze.rendering.pymupdf_adapter import PyMuPdfRenderer
from doclyze.retry.retryable_caller import RetryableCaller


class RendererFactory:
    """Creates the document renderer based on settings."""

    SUPPORTED: tuple[str, ...] = ("pymupdf", "gotenberg")

    @classmethod
    def create(cls, settings: Settings, caller: RetryableCaller) -> BaseRenderer:
        engine = settings.renderer.lower()
        if engine == "pymupdf":
            return PyMuPdfRenderer()
        if engine == "gotenberg":
            return GotenbergRenderer(
                base_url=settings.gotenberg_url,
                timeout_seconds=settings.gotenberg_timeout_seconds,
                caller=caller,
            )
        raise ValueError(f"Unknown renderer '{engine}'. Choose from: {list(cls.SUPPORTED)}")
