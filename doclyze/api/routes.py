# ruff: noqa: B008
from collections.abc import Iterator

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from doclyze.api.dependencies import (
    current_identity,
    get_services,
    load_authorized_project,
    require_backend,
)
from doclyze.api.schemas import (
    ChatRequest,
    DocumentStatusesOut,
    DocumentStatusOut,
    SyncResultOut,
)
from doclyze.auth.identity import Identity, authorize_project
from doclyze.container import Services
from doclyze.domain.models import ProcessingState, ReportKind, derive_readiness
from doclyze.logging.logger import Log
from doclyze.progress.reporter import ProgressReporter
from doclyze.progress.sse import encode_sse
from doclyze.storage.exceptions import ObjectNotFoundError

router = APIRouter()

_SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}


@router.get("/health")
def health_check(services: Services = Depends(get_services)) -> dict[str, str]:
    return {
        "status": "ok",
        "environment": services.settings.app_env,
        "backend": "configured" if services.backend is not None else "unavailable",
    }


@router.get("/projects/{project_id}/document-statuses", response_model=DocumentStatusesOut)
def document_statuses(
    project_id: int,
    identity: Identity = Depends(current_identity),
    services: Services = Depends(get_services),
) -> DocumentStatusesOut:
    load_authorized_project(services, project_id, identity)
    statuses = services.state_machine.list_statuses(project_id)
    return DocumentStatusesOut(
        readiness=derive_readiness(s.processing_state for s in statuses).value,
        documents=[
            DocumentStatusOut(
                id=s.id,
                fileName=s.file_name,
                processingState=s.processing_state.value,
                activationProgress=s.activation_progress,
            )
            for s in statuses
        ],
    )


@router.post("/projects/{project_id}/prepare", status_code=status.HTTP_202_ACCEPTED)
def prepare_project(
    project_id: int,
    identity: Identity = Depends(current_identity),
    services: Services = Depends(get_services),
) -> dict[str, int]:
    load_authorized_project(services, project_id, identity)
    documents = services.document_repo.list_for_project(project_id)
    pending = [d for d in documents if d.processing_state is ProcessingState.PENDING]
    return {"dispatched": services.preparation_runner.dispatch(pending)}


@router.post("/projects/{project_id}/sync-files", response_model=SyncResultOut)
def sync_files(
    project_id: int,
    identity: Identity = Depends(current_identity),
    services: Services = Depends(get_services),
) -> SyncResultOut:
    load_authorized_project(services, project_id, identity)
    documents = services.document_repo.list_for_project(project_id)
    summary = services.ingestor.sync_project(documents)
    return SyncResultOut(
        message="Sync check complete.",
        synced=summary.synced,
        skipped=summary.skipped,
        errors=summary.errors,
    )


@router.get("/projects/{project_id}/reports/{kind}")
def generate_report(
    project_id: int,
    kind: ReportKind,
    identity: Identity = Depends(current_identity),
    services: Services = Depends(get_services),
) -> StreamingResponse:
    require_backend(services)
    project = load_authorized_project(services, project_id, identity)
    reporter = services.report_pipeline.generate(project, kind)
    return StreamingResponse(
        _sse_frames(reporter),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )


@router.post("/chat/{project_id}")
def chat(
    project_id: int,
    body: ChatRequest,
    identity: Identity = Depends(current_identity),
    services: Services = Depends(get_services),
) -> StreamingResponse:
    require_backend(services)
    project = load_authorized_project(
        services, project_id, identity, transcript_limit=services.settings.chat_history_turns
    )
    history = [turn.to_domain() for turn in body.history] if body.history is not None else None
    return StreamingResponse(
        services.chat_pipeline.respond(project, body.message, history),
        media_type="text/plain; charset=utf-8",
    )


@router.get("/documents/{document_id}/download-url")
def document_download_url(
    document_id: int,
    identity: Identity = Depends(current_identity),
    services: Services = Depends(get_services),
) -> dict[str, str]:
    document = services.document_repo.find_by_id(document_id)
    project = services.project_repo.find_by_id(document.project_id, transcript_limit=0)
    authorize_project(project, identity)
    if not document.storage_locator:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document has no stored file")
    try:
        url = services.storage.issue_signed_url(
            document.storage_locator, services.settings.signed_url_ttl_seconds
        )
    except ObjectNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Stored file is missing") from exc
    return {"url": url}


def _sse_frames(reporter: ProgressReporter) -> Iterator[str]:
    delivered_terminal = False
    try:
        for event in reporter.events():
            yield encode_sse(event)
        delivered_terminal = True
    finally:
        if not delivered_terminal:
            Log.info("Report stream closed by the client before completion")
            reporter.disconnect()
