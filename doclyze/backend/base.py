from abc import ABC, abstractmethod
from collections.abc import Iterator

from doclyze.backend.models import FileHandle, GenerationRequest


class BaseAIBackend(ABC):
    """Contract for generative AI backend adapters."""

    @abstractmethod
    def generate(self, request: GenerationRequest) -> str:
        """Run one generation and return its full text.

        Raises:
            BackendError: on any failure, classified by subclass.
        """

    @abstractmethod
    def generate_stream(self, request: GenerationRequest) -> Iterator[str]:
        """Start a streaming generation.

        Initiation errors are raised by this call itself; the returned iterator
        raises StreamInterruptedError if the stream breaks afterwards.
        """

    @abstractmethod
    def register_file(self, data: bytes, mime_type: str, display_name: str) -> FileHandle:
        """Upload a file to the backend's file registry."""

    @abstractmethod
    def get_file(self, name: str) -> FileHandle:
        """Fetch the current state of a registered file."""

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Return the embedding vector of a text."""
