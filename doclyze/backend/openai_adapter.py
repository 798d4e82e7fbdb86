"""AI backend adapter built on the OpenAI-compatible API.

Generation goes through Chat Completions, file registration through the Files
API and embeddings through the Embeddings API. Provider exceptions are
translated into the backend taxonomy so callers never inspect SDK errors.
"""

import base64
from collections.abc import Callable, Iterator
from typing import Any, TypeVar

import httpx
import openai

from doclyze.backend.base import BaseAIBackend
from doclyze.backend.exceptions import (
    BackendAuthError,
    BackendError,
    BackendNetworkError,
    EmptyGenerationError,
    InvalidInputError,
    RateLimitedError,
    SafetyRejectionError,
    ServerUnavailableError,
    StreamInterruptedError,
)
from doclyze.backend.models import (
    ContentPart,
    FileHandle,
    FileRefPart,
    GenerationRequest,
    InlineDataPart,
    RemoteFileState,
    SafetyLevel,
    TextPart,
)
from doclyze.logging.logger import Log

T = TypeVar("T")

_FILE_STATES = {
    "uploaded": RemoteFileState.PROCESSING,
    "processed": RemoteFileState.ACTIVE,
    "error": RemoteFileState.FAILED,
}
_SAFETY_CODES = frozenset({"content_policy_violation", "content_filter"})


class OpenAIBackend(BaseAIBackend):
    """Backend adapter for OpenAI and OpenAI-compatible providers."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        embedding_model: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )
        self._model = model
        self._embedding_model = embedding_model

    def generate(self, request: GenerationRequest) -> str:
        response = _call(
            lambda: self._client.chat.completions.create(
                model=self._model,
                messages=_to_messages(request),
            )
        )
        if not response.choices:
            raise EmptyGenerationError("AI returned no choices")
        choice = response.choices[0]
        if choice.finish_reason == "content_filter":
            raise SafetyRejectionError("Response blocked due to: content_filter")
        content = choice.message.content
        if not content:
            raise EmptyGenerationError("AI returned empty response")
        return content

    def generate_stream(self, request: GenerationRequest) -> Iterator[str]:
        stream = _call(
            lambda: self._client.chat.completions.create(
                model=self._model,
                messages=_to_messages(request),
                stream=True,
            )
        )
        return _iter_stream(stream)

    def register_file(self, data: bytes, mime_type: str, display_name: str) -> FileHandle:
        file_object = _call(
            lambda: self._client.files.create(
                file=(display_name, data, mime_type),
                purpose="user_data",
            )
        )
        return _to_handle(file_object)

    def get_file(self, name: str) -> FileHandle:
        return _to_handle(_call(lambda: self._client.files.retrieve(name)))

    def embed(self, text: str) -> list[float]:
        response = _call(
            lambda: self._client.embeddings.create(model=self._embedding_model, input=text)
        )
        if not response.data:
            raise EmptyGenerationError("AI returned no embedding")
        return list(response.data[0].embedding)


def _call(fn: Callable[[], T]) -> T:
    try:
        return fn()
    except (openai.APIError, httpx.HTTPError) as exc:
        raise translate_error(exc) from exc


def translate_error(exc: Exception) -> BackendError:
    """Map an openai/httpx exception onto the backend taxonomy."""
    if isinstance(exc, (openai.APIConnectionError, httpx.TransportError)):
        return BackendNetworkError(f"AI provider network error: {exc}")
    if isinstance(exc, openai.RateLimitError):
        return RateLimitedError(f"AI provider rate limit: {exc}")
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return BackendAuthError(f"AI provider rejected credentials: {exc}")
    if isinstance(exc, openai.BadRequestError):
        if exc.code in _SAFETY_CODES:
            return SafetyRejectionError(f"Blocked due to: {exc.code}")
        return InvalidInputError(f"AI provider rejected the request: {exc}")
    if isinstance(exc, openai.UnprocessableEntityError):
        return InvalidInputError(f"AI provider could not process the input: {exc}")
    if isinstance(exc, openai.APIStatusError) and exc.status_code < 500:
        return InvalidInputError(f"AI provider API error: {exc}")
    return ServerUnavailableError(f"AI provider API error: {exc}")


def _iter_stream(stream: Any) -> Iterator[str]:
    try:
        for chunk in stream:
            if not chunk.choices:
                continue
            choice = chunk.choices[0]
            if choice.finish_reason == "content_filter":
                raise SafetyRejectionError("Response blocked due to: content_filter")
            if choice.delta.content:
                yield choice.delta.content
    except (openai.APIError, httpx.HTTPError) as exc:
        raise StreamInterruptedError(f"AI stream interrupted: {exc}") from exc
    finally:
        stream.close()


def _to_handle(file_object: Any) -> FileHandle:
    state = _FILE_STATES.get(file_object.status, RemoteFileState.PROCESSING)
    return FileHandle(name=file_object.id, state=state)


def _to_messages(request: GenerationRequest) -> list[dict[str, Any]]:
    if request.safety is not SafetyLevel.DEFAULT:
        Log.debug(f"Safety level '{request.safety.value}' has no provider equivalent")
    messages: list[dict[str, Any]] = []
    if request.system_instruction:
        messages.append({"role": "system", "content": request.system_instruction})
    for message in request.contents:
        role = "assistant" if message.role == "model" else message.role
        if role == "assistant":
            text = "".join(p.text for p in message.parts if isinstance(p, TextPart))
            messages.append({"role": role, "content": text})
        else:
            messages.append({"role": role, "content": [_to_part(p) for p in message.parts]})
    return messages


def _to_part(part: ContentPart) -> dict[str, Any]:
    if isinstance(part, TextPart):
        return {"type": "text", "text": part.text}
    if isinstance(part, FileRefPart):
        return {"type": "file", "file": {"file_id": part.file_name}}
    if isinstance(part, InlineDataPart):
        data_url = f"data:{part.mime_type};base64,{base64.b64encode(part.data).decode('ascii')}"
        if part.mime_type.startswith("image/"):
            return {"type": "image_url", "image_url": {"url": data_url}}
        return {"type": "file", "file": {"filename": part.display_name, "file_data": data_url}}
    raise InvalidInputError(f"Unsupported content part: {part!r}")
