from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum


class ProcessingState(str, Enum):
    """Lifecycle of one uploaded document."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingState.ACTIVE, ProcessingState.FAILED)


class Readiness(str, Enum):
    """Aggregate project status derived from its documents' states."""

    NO_FILES = "no_files"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


class ReportKind(str, Enum):
    EXTRACT_SUMMARY = "extract-summary"
    BILL_OF_MATERIALS = "bill-of-materials"
    COMPLIANCE = "compliance"


class TranscriptRole(str, Enum):
    USER = "user"
    MODEL = "model"


@dataclass(frozen=True)
class Document:
    """One uploaded file and its processing metadata."""

    id: int
    project_id: int
    file_name: str
    storage_locator: str | None
    file_size_bytes: int
    mime_type: str
    processing_state: ProcessingState = ProcessingState.PENDING
    remote_handle: str | None = None
    activation_progress: int = 0


@dataclass(frozen=True)
class TranscriptTurn:
    role: TranscriptRole
    text: str


@dataclass(frozen=True)
class Project:
    """A named collection of documents plus its conversation transcript."""

    id: int
    name: str
    owner_id: str | None = None
    guest_owner_id: str | None = None
    transcript: list[TranscriptTurn] = field(default_factory=list)


@dataclass(frozen=True)
class DocumentStatus:
    """One entry of the status polling surface."""

    id: int
    file_name: str
    processing_state: ProcessingState
    activation_progress: int


def derive_readiness(states: Iterable[ProcessingState]) -> Readiness:
    """Compute project readiness from the set of document states."""
    collected = list(states)
    if not collected:
        return Readiness.NO_FILES
    if any(not state.is_terminal for state in collected):
        return Readiness.PROCESSING
    if any(state is ProcessingState.ACTIVE for state in collected):
        return Readiness.READY
    return Readiness.FAILED
