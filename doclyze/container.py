import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from doclyze.backend.base import BaseAIBackend
from doclyze.backend.factory import BackendFactory
from doclyze.chat.pipeline import ChatPipeline
from doclyze.config.settings import Settings
from doclyze.database.repositories.document_repository import DocumentRepository
from doclyze.database.repositories.project_repository import ProjectRepository
from doclyze.preparation.ingestor import DocumentIngestor
from doclyze.preparation.poller import ActivationPoller
from doclyze.preparation.state_machine import ProcessingStateMachine
from doclyze.rendering.factory import RendererFactory
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
from doclyze.search.factory import SearchFactory
from doclyze.storage.base import BaseObjectStorage
from doclyze.storage.factory import StorageFactory
from doclyze.worker.runner import PreparationRunner


@dataclass
class Services:
    """Collaborators and pipelines, built once per process."""

    settings: Settings
    backend: BaseAIBackend | None
    storage: BaseObjectStorage
    document_repo: DocumentRepository
    project_repo: ProjectRepository
    ingestor: DocumentIngestor
    state_machine: ProcessingStateMachine
    preparation_runner: PreparationRunner
    report_pipeline: ReportPipeline
    chat_pipeline: ChatPipeline
    report_executor: ThreadPoolExecutor

    def shutdown(self) -> None:
        self.preparation_runner.shutdown(wait=False)
        self.report_executor.shutdown(wait=False)


def build_services(
    settings: Settings,
    sleep: Callable[[float], None] = time.sleep,
) -> Services:
    """Build every collaborator from settings."""
    caller = RetryableCaller(
        max_attempts=settings.retry_max_attempts,
        base_delay_seconds=settings.retry_base_delay_seconds,
        sleep=sleep,
    )
    backend = BackendFactory.create(settings)
    storage = StorageFactory.create(settings)
    search = SearchFactory.create(settings)
    renderer = RendererFactory.create(settings, caller)
    document_repo = DocumentRepository()
    project_repo = ProjectRepository()

    ingestor = DocumentIngestor(storage, backend, settings.local_cache_dir)
    poller = (
        ActivationPoller(
            backend,
            poll_interval_seconds=settings.activation_poll_interval_seconds,
            max_attempts=settings.activation_max_polls,
            sleep=sleep,
        )
        if backend is not None
        else None
    )
    state_machine = ProcessingStateMachine(document_repo, ingestor, poller, caller)
    preparation_runner = PreparationRunner(state_machine, settings.preparation_concurrency)

    report_executor = ThreadPoolExecutor(
        max_workers=settings.report_concurrency, thread_name_prefix="doclyze-report"
    )
    report_pipeline = ReportPipeline(
        steps=[
            ResolveSourcesStep(document_repo),
            MaterializeInputsStep(storage),
            ExtractStep(backend, caller),
            SynthesizeStep(backend, caller),
            NormalizeStep(),
            RenderStep(renderer),
            PublishStep(storage, settings.signed_url_ttl_seconds),
        ],
        executor=report_executor,
    )
    chat_pipeline = ChatPipeline(
        backend=backend,
        search=search,
        caller=caller,
        project_repo=project_repo,
        document_repo=document_repo,
        top_k=settings.chat_top_k,
        history_turns=settings.chat_history_turns,
    )
    return Services(
        settings=settings,
        backend=backend,
        storage=storage,
        document_repo=document_repo,
        project_repo=project_repo,
        ingestor=ingestor,
        state_machine=state_machine,
        preparation_runner=preparation_runner,
        report_pipeline=report_pipeline,
        chat_pipeline=chat_pipeline,
        report_executor=report_executor,
    )
