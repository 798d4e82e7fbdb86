from dataclasses import dataclass, field
from enum import Enum


class RemoteFileState(str, Enum):
    """Activation state of a file registered with the AI backend."""

    PROCESSING = "PROCESSING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"


class SafetyLevel(str, Enum):
    DEFAULT = "default"
    RELAXED = "relaxed"


@dataclass(frozen=True)
class FileHandle:
    """Reference into the backend's file registry."""

    name: str
    state: RemoteFileState


@dataclass(frozen=True)
class TextPart:
    type: str = "text"
    text: str = ""


@dataclass(frozen=True)
class InlineDataPart:
    """Raw file bytes sent along with the request."""

    type: str = "inline_data"
    data: bytes = b""
    mime_type: str = "application/octet-stream"
    display_name: str = ""


@dataclass(frozen=True)
class FileRefPart:
    """A file already registered with the backend."""

    type: str = "file_ref"
    file_name: str = ""


ContentPart = TextPart | InlineDataPart | FileRefPart


@dataclass(frozen=True)
class Message:
    role: str
    parts: list[ContentPart] = field(default_factory=list)


@dataclass(frozen=True)
class GenerationRequest:
    """Everything one generation call sends to the backend."""

    contents: list[Message]
    system_instruction: str = ""
    safety: SafetyLevel = SafetyLevel.DEFAULT
