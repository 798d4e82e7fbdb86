"""Example AI backend adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseAIBackend and register the provider in BackendFactory.
"""

import hashlib
from collections.abc import Iterator
from typing import ClassVar

from doclyze.backend.base import BaseAIBackend
from doclyze.backend.models import FileHandle, GenerationRequest, RemoteFileState, TextPart


class ExampleBackend(BaseAIBackend):
    """Example adapter that answers with fixed text.

    No network calls. Registered files are reported active straight away.
    Useful for local development, tests, and as a template for real
    provider adapters.
    """

    DEFAULT_RESPONSE: ClassVar[str] = "<h1>Example report</h1><p>No AI provider configured.</p>"
    EMBEDDING_SIZE: ClassVar[int] = 8

    def __init__(self) -> None:
        self._files: dict[str, RemoteFileState] = {}

    def generate(self, request: GenerationRequest) -> str:
        _ = request
        return self.DEFAULT_RESPONSE

    def generate_stream(self, request: GenerationRequest) -> Iterator[str]:
        prompt = _last_text(request)
        return iter(["Example answer", f" to: {prompt}" if prompt else "."])

    def register_file(self, data: bytes, mime_type: str, display_name: str) -> FileHandle:
        _ = mime_type
        name = f"files/{hashlib.sha256(data).hexdigest()[:16]}-{display_name}"
        self._files[name] = RemoteFileState.ACTIVE
        return FileHandle(name=name, state=RemoteFileState.ACTIVE)

    def get_file(self, name: str) -> FileHandle:
        return FileHandle(name=name, state=self._files.get(name, RemoteFileState.FAILED))

    def embed(self, text: str) -> list[float]:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [byte / 255 for byte in digest[: self.EMBEDDING_SIZE]]


def _last_text(request: GenerationRequest) -> str:
    for message in reversed(request.contents):
        for part in reversed(message.parts):
            if isinstance(part, TextPart) and part.text:
                return part.text
    return ""
