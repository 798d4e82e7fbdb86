from collections.abc import Generator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from doclyze.api.app import create_app
from doclyze.backend.example_adapter import ExampleBackend
from doclyze.chat.pipeline import CHAT_ERROR_SENTINEL, ChatPipeline
from doclyze.config.settings import Settings
from doclyze.container import Services
from doclyze.domain.models import ProcessingState
from doclyze.preparation.ingestor import DocumentIngestor
from doclyze.preparation.poller import ActivationPoller
from doclyze.preparation.state_machine import ProcessingStateMachine
from doclyze.reports.generator import ReportPipeline
from doclyze.reports.steps import (
    ExtractStep,
    MaterializeInputsStep,
    NormalizeStep,
    PublishStep,
    RenderStep,
    ResolveSourcesStep,
    SynthesizeStep,
)
from doclyze.retry.retryable_caller import RetryableCaller

OWNER = {"X-User-ID": "user-1"}


@pytest.fixture()
def services(document_repo, project_repo, storage, tmp_path: Path) -> Generator[Services, None, None]:
    backend = ExampleBackend()
    caller = RetryableCaller(sleep=MagicMock())
    renderer = MagicMock()
    renderer.render_to_document.return_value = b"%PDF-1.7"
    ingestor = DocumentIngestor(storage, backend, tmp_path)
    state_machine = ProcessingStateMachine(
        document_repo, ingestor, ActivationPoller(backend, sleep=MagicMock()), caller
    )
    executor = ThreadPoolExecutor(max_workers=1)
    runner = MagicMock()
    runner.dispatch.side_effect = lambda documents: len(list(documents))
    built = Services(
        settings=Settings(),
        backend=backend,
        storage=storage,
        document_repo=document_repo,
        project_repo=project_repo,
        ingestor=ingestor,
        state_machine=state_machine,
        preparation_runner=runner,
        report_pipeline=ReportPipeline(
            steps=[
                ResolveSourcesStep(document_repo),
                MaterializeInputsStep(storage),
                ExtractStep(backend, caller),
                SynthesizeStep(backend, caller),
                NormalizeStep(),
                RenderStep(renderer),
                PublishStep(storage, 900, clock=lambda: 1.0),
            ],
            executor=executor,
        ),
        chat_pipeline=ChatPipeline(backend, None, caller, project_repo, document_repo),
        report_executor=executor,
    )
    yield built
    executor.shutdown(wait=True)


@pytest.fixture()
def client(services: Services) -> Generator[TestClient, None, None]:
    with TestClient(create_app(services)) as test_client:
        yield test_client


def _seed(document_repo, storage, make_document) -> None:
    for index, state in enumerate(
        [ProcessingState.ACTIVE, ProcessingState.PENDING, ProcessingState.FAILED], start=1
    ):
        document = make_document(index, processing_state=state)
        document_repo.add(document)
        storage.objects[document.storage_locator] = b"pdf"


class TestHealth:
    def test_reports_backend(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["backend"] == "configured"


class TestAuthorization:
    def test_missing_identity_is_401(self, client: TestClient) -> None:
        response = client.get("/projects/10/document-statuses")
        assert response.status_code == 401
        assert response.json() == {"detail": "Unauthorized"}

    def test_other_user_is_403(self, client: TestClient) -> None:
        response = client.get("/projects/10/document-statuses", headers={"X-User-ID": "intruder"})
        assert response.status_code == 403

    def test_unknown_project_is_404(self, client: TestClient) -> None:
        response = client.get("/projects/999/document-statuses", headers=OWNER)
        assert response.status_code == 404
        assert response.json() == {"detail": "Not found"}


class TestDocumentStatuses:
    def test_lists_documents_with_readiness(
        self, client: TestClient, document_repo, storage, make_document
    ) -> None:
        _seed(document_repo, storage, make_document)

        body = client.get("/projects/10/document-statuses", headers=OWNER).json()

        assert body["readiness"] == "processing"
        assert {d["processingState"] for d in body["documents"]} == {"ACTIVE", "PENDING", "FAILED"}

    def test_empty_project_has_no_files(self, client: TestClient) -> None:
        body = client.get("/projects/10/document-statuses", headers=OWNER).json()
        assert body == {"readiness": "no_files", "documents": []}


class TestPrepareAndSync:
    def test_prepare_dispatches_pending(
        self, client: TestClient, services: Services, document_repo, storage, make_document
    ) -> None:
        _seed(document_repo, storage, make_document)

        response = client.post("/projects/10/prepare", headers=OWNER)

        assert response.status_code == 202
        assert response.json() == {"dispatched": 1}
        dispatched = services.preparation_runner.dispatch.call_args.args[0]
        assert [d.id for d in dispatched] == [2]

    def test_sync_files_reports_counts(
        self, client: TestClient, document_repo, storage, make_document
    ) -> None:
        _seed(document_repo, storage, make_document)
        document_repo.add(make_document(4))

        body = client.post("/projects/10/sync-files", headers=OWNER).json()

        assert body == {"message": "Sync check complete.", "synced": 3, "skipped": 0, "errors": 1}


class TestReports:
    def test_streams_progress_then_download_url(
        self, client: TestClient, document_repo, storage, make_document
    ) -> None:
        _seed(document_repo, storage, make_document)

        response = client.get("/projects/10/reports/extract-summary", headers=OWNER)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        frames = [f for f in response.text.split("\n\n") if f]
        assert frames[0] == 'data: {"status": "Initializing Preliminary Design Report..."}'
        assert frames[-1].startswith("event: complete\ndata: ")
        assert "pdr_report_10_1000.pdf" in frames[-1]

    def test_no_sources_streams_error_event(self, client: TestClient) -> None:
        response = client.get("/projects/10/reports/bill-of-materials", headers=OWNER)

        frames = [f for f in response.text.split("\n\n") if f]
        assert frames[-1].startswith("event: error\n")
        assert sum(f.startswith("event: ") for f in frames) == 1

    def test_unknown_kind_is_422(self, client: TestClient) -> None:
        response = client.get("/projects/10/reports/summary", headers=OWNER)
        assert response.status_code == 422

    def test_missing_backend_is_503(self, services: Services) -> None:
        with TestClient(create_app(replace(services, backend=None))) as client:
            response = client.get("/projects/10/reports/compliance", headers=OWNER)
        assert response.status_code == 503


class TestChat:
    def test_streams_plain_text_answer(self, client: TestClient, project_repo) -> None:
        response = client.post("/chat/10", json={"message": "Beam size?"}, headers=OWNER)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "Example answer to: Beam size?"
        assert project_repo.appended[0][1][1].text == "Example answer to: Beam size?"

    def test_client_history_is_accepted(self, client: TestClient) -> None:
        response = client.post(
            "/chat/10",
            json={
                "message": "And the columns?",
                "history": [
                    {"role": "user", "text": "Beam size?"},
                    {"role": "model", "text": "W12x26."},
                ],
            },
            headers=OWNER,
        )
        assert response.status_code == 200
        assert not response.text.startswith(CHAT_ERROR_SENTINEL)

    def test_empty_message_is_422(self, client: TestClient) -> None:
        response = client.post("/chat/10", json={"message": ""}, headers=OWNER)
        assert response.status_code == 422

    def test_guest_cannot_chat_in_owner_project(self, client: TestClient) -> None:
        response = client.post("/chat/10", json={"message": "Hi"}, headers={"X-Guest-ID": "g"})
        assert response.status_code == 403


class TestDownloadUrl:
    def test_returns_signed_url(
        self, client: TestClient, document_repo, storage, make_document
    ) -> None:
        _seed(document_repo, storage, make_document)

        response = client.get("/documents/1/download-url", headers=OWNER)

        assert response.status_code == 200
        assert response.json()["url"].startswith("https://signed.test/")

    def test_missing_object_is_404(self, client: TestClient, document_repo, make_document) -> None:
        document_repo.add(make_document(1))

        response = client.get("/documents/1/download-url", headers=OWNER)

        assert response.status_code == 404
