from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RenderOptions:
    """Page geometry of the rendered document."""

    paper: str = "A4"
    margin_inches: float = 1.0
    print_background: bool = True


class BaseRenderer(ABC):
    """Contract for markup-to-document rendering adapters."""

    @abstractmethod
    def render_to_document(self, markup: str, options: RenderOptions | None = None) -> bytes:
        """Convert a complete HTML document into PDF bytes.

        Raises:
            RenderError: if conversion fails for any reason.
        """
