import io
import threading
from collections.abc import Callable
from dataclasses import replace

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from doclyze.domain.exceptions import DocumentNotFoundError, ProjectNotFoundError
from doclyze.domain.models import (
    Document,
    DocumentStatus,
    ProcessingState,
    Project,
    TranscriptTurn,
)
from doclyze.storage.base import BaseObjectStorage
from doclyze.storage.exceptions import ObjectNotFoundError


class FakeDocumentRepository:
    """In-memory document store with the same compare-and-set semantics."""

    def __init__(self, documents: list[Document] | None = None) -> None:
        self._lock = threading.Lock()
        self.now = 0.0
        self.documents: dict[int, Document] = {}
        self.updated_at: dict[int, float] = {}
        self.progress_updates: list[tuple[int, int]] = []
        for document in documents or []:
            self.add(document)

    def add(self, document: Document) -> None:
        self.documents[document.id] = document
        self.updated_at[document.id] = self.now

    def find_by_id(self, document_id: int) -> Document:
        if document_id not in self.documents:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return self.documents[document_id]

    def list_for_project(self, project_id: int) -> list[Document]:
        return [d for d in self.documents.values() if d.project_id == project_id]

    def list_statuses(self, project_id: int) -> list[DocumentStatus]:
        return [
            DocumentStatus(
                id=d.id,
                file_name=d.file_name,
                processing_state=d.processing_state,
                activation_progress=d.activation_progress,
            )
            for d in self.list_for_project(project_id)
        ]

    def find_pending(self, limit: int) -> list[Document]:
        pending = [
            d for d in self.documents.values() if d.processing_state is ProcessingState.PENDING
        ]
        return pending[:limit]

    def transition_state(
        self, document_id: int, from_state: ProcessingState, to_state: ProcessingState
    ) -> bool:
        with self._lock:
            current = self.documents[document_id]
            if current.processing_state is not from_state:
                return False
            self.documents[document_id] = replace(current, processing_state=to_state)
            self.updated_at[document_id] = self.now
            return True

    def set_remote_handle(self, document_id: int, remote_handle: str) -> None:
        with self._lock:
            self.documents[document_id] = replace(
                self.documents[document_id], remote_handle=remote_handle
            )
            self.updated_at[document_id] = self.now

    def update_activation_progress(self, document_id: int, progress: int) -> None:
        with self._lock:
            self.progress_updates.append((document_id, progress))
            self.documents[document_id] = replace(
                self.documents[document_id], activation_progress=progress
            )
            self.updated_at[document_id] = self.now

    def fail_stale_processing(self, older_than_seconds: float) -> list[int]:
        failed = []
        with self._lock:
            for document_id, document in self.documents.items():
                stale = self.now - self.updated_at[document_id] > older_than_seconds
                if document.processing_state is ProcessingState.PROCESSING and stale:
                    self.documents[document_id] = replace(
                        document, processing_state=ProcessingState.FAILED
                    )
                    self.updated_at[document_id] = self.now
                    failed.append(document_id)
        return failed


class FakeProjectRepository:
    def __init__(self, projects: list[Project] | None = None) -> None:
        self.projects: dict[int, Project] = {p.id: p for p in projects or []}
        self.appended: list[tuple[int, list[TranscriptTurn]]] = []

    def find_by_id(self, project_id: int, transcript_limit: int | None = None) -> Project:
        if project_id not in self.projects:
            raise ProjectNotFoundError(f"Project {project_id} not found")
        project = self.projects[project_id]
        if transcript_limit is None:
            return project
        tail = project.transcript[-transcript_limit:] if transcript_limit else []
        return replace(project, transcript=tail)

    def append_transcript(self, project_id: int, turns: list[TranscriptTurn]) -> None:
        self.appended.append((project_id, list(turns)))


class InMemoryStorage(BaseObjectStorage):
    def __init__(self, objects: dict[str, bytes] | None = None) -> None:
        self.objects: dict[str, bytes] = dict(objects or {})
        self.downloads: list[str] = []

    def download(self, locator: str) -> bytes:
        self.downloads.append(locator)
        if locator not in self.objects:
            raise ObjectNotFoundError(f"No object at {locator}")
        return self.objects[locator]

    def upload(self, data: bytes, locator: str, content_type: str) -> None:
        self.objects[locator] = data

    def issue_signed_url(self, locator: str, ttl_seconds: int) -> str:
        if locator not in self.objects:
            raise ObjectNotFoundError(f"No object at {locator}")
        return f"https://signed.test/{locator.split('://', 1)[1]}?ttl={ttl_seconds}"

    def locator_for(self, key: str) -> str:
        return f"mem://bucket/{key}"


@pytest.fixture()
def make_document() -> Callable[..., Document]:
    def factory(document_id: int = 1, **overrides: object) -> Document:
        fields: dict[str, object] = {
            "id": document_id,
            "project_id": 10,
            "file_name": f"drawing-{document_id}.pdf",
            "storage_locator": f"mem://bucket/projects/10/drawing-{document_id}.pdf",
            "file_size_bytes": 1024,
            "mime_type": "application/pdf",
        }
        fields.update(overrides)
        return Document(**fields)  # type: ignore[arg-type]

    return factory


@pytest.fixture()
def project() -> Project:
    return Project(id=10, name="Riverside Tower", owner_id="user-1")


@pytest.fixture()
def document_repo() -> FakeDocumentRepository:
    return FakeDocumentRepository()


@pytest.fixture()
def project_repo(project: Project) -> FakeProjectRepository:
    return FakeProjectRepository([project])


@pytest.fixture()
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Ground floor plan")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Sheet A-101")
    c.showPage()
    c.drawString(72, 720, "Sheet S-201")
    c.save()
    return buf.getvalue()
