import mimetypes
import time
from collections.abc import Callable
from typing import ClassVar

from doclyze.backend.base import BaseAIBackend
from doclyze.backend.exceptions import BackendUnavailableError, EmptyGenerationError
from doclyze.backend.models import GenerationRequest, InlineDataPart, Message, SafetyLevel, TextPart
from doclyze.database.repositories.document_repository import DocumentRepository
from doclyze.domain.models import ReportKind
from doclyze.logging.logger import Log
from doclyze.reports.exceptions import NoSourcesError
from doclyze.reports.markup import strip_code_fences
from doclyze.reports.pipeline import ReportJob, ReportStep
from doclyze.reports.prompt_loader import load_prompt_template, load_rule_corpus
from doclyze.rendering.base import BaseRenderer, RenderOptions
from doclyze.rendering.template import wrap_in_template
from doclyze.retry.retryable_caller import RetryableCaller
from doclyze.storage.base import BaseObjectStorage

REPORT_TITLES: dict[ReportKind, str] = {
    ReportKind.EXTRACT_SUMMARY: "Preliminary Design Report",
    ReportKind.BILL_OF_MATERIALS: "Bill of Materials",
    ReportKind.COMPLIANCE: "Compliance Report",
}
REPORT_FILE_PREFIXES: dict[ReportKind, str] = {
    ReportKind.EXTRACT_SUMMARY: "pdr",
    ReportKind.BILL_OF_MATERIALS: "bom",
    ReportKind.COMPLIANCE: "compliance",
}


class ResolveSourcesStep(ReportStep):
    stage = "resolve_sources"

    def __init__(self, document_repo: DocumentRepository) -> None:
        self._document_repo = document_repo

    def run(self, job: ReportJob) -> ReportJob:
        job.reporter.status("Fetching document list...")
        documents = self._document_repo.list_for_project(job.project.id)
        job.sources = [document for document in documents if document.storage_locator]
        if not job.sources:
            raise NoSourcesError(f"Project {job.project.id} has no documents with storage locators")
        Log.info(f"Report {job.kind.value} for project {job.project.id}: {len(job.sources)} sources")
        return job


class MaterializeInputsStep(ReportStep):
    """Downloads every source; one failed download aborts the whole job."""

    stage = "materialize_inputs"

    def __init__(self, storage: BaseObjectStorage) -> None:
        self._storage = storage

    def run(self, job: ReportJob) -> ReportJob:
        job.reporter.status(f"Preparing {len(job.sources)} files...")
        for document in job.sources:
            job.reporter.status(f"Downloading {document.file_name}...")
            data = self._storage.download(document.storage_locator)  # type: ignore[arg-type]
            mime_type = (
                document.mime_type
                or mimetypes.guess_type(document.file_name)[0]
                or "application/octet-stream"
            )
            job.inputs.append(
                InlineDataPart(data=data, mime_type=mime_type, display_name=document.file_name)
            )
        job.reporter.status(f"Using {len(job.inputs)} downloaded files.")
        return job


class _GenerationStep(ReportStep):
    def __init__(self, backend: BaseAIBackend | None, caller: RetryableCaller) -> None:
        self._backend = backend
        self._caller = caller

    def _generate(self, job: ReportJob, request: GenerationRequest, label: str) -> str:
        backend = self._backend
        if backend is None:
            raise BackendUnavailableError("AI backend is not configured")

        def on_retry(attempt: int, max_attempts: int) -> None:
            job.reporter.status(f"{label} attempt {attempt} of {max_attempts} failed, retrying...")

        text = self._caller.call(lambda: backend.generate(request), on_retry=on_retry)
        if not text or not text.strip():
            raise EmptyGenerationError(f"{label} returned empty text")
        return text


class ExtractStep(_GenerationStep):
    stage = "extract"

    FOCUS: ClassVar[dict[ReportKind, str]] = {
        ReportKind.EXTRACT_SUMMARY: "Structure the output clearly.",
        ReportKind.BILL_OF_MATERIALS: (
            "Focus on text relevant to components, materials, dimensions, and quantities."
        ),
        ReportKind.COMPLIANCE: (
            "Focus on components, materials, dimensions, specifications, and safety notes."
        ),
    }

    def __init__(self, backend: BaseAIBackend | None, caller: RetryableCaller) -> None:
        super().__init__(backend, caller)
        self._template = load_prompt_template("extraction")

    def run(self, job: ReportJob) -> ReportJob:
        prompt = self._template.format(
            file_names=", ".join(document.file_name for document in job.sources),
            focus=self.FOCUS[job.kind],
        )
        request = GenerationRequest(
            contents=[Message(role="user", parts=[TextPart(text=prompt), *job.inputs])],
            safety=SafetyLevel.RELAXED,
        )
        job.reporter.status("Performing OCR...")
        job.extracted_text = self._generate(job, request, "Text extraction")
        job.reporter.status("Text extraction complete.")
        Log.info(f"Extracted {len(job.extracted_text)} chars for project {job.project.id}")
        return job


class SynthesizeStep(_GenerationStep):
    stage = "synthesize"

    TEMPLATES: ClassVar[dict[ReportKind, str]] = {
        ReportKind.EXTRACT_SUMMARY: "synthesis_extract_summary",
        ReportKind.BILL_OF_MATERIALS: "synthesis_bill_of_materials",
        ReportKind.COMPLIANCE: "synthesis_compliance",
    }

    def __init__(self, backend: BaseAIBackend | None, caller: RetryableCaller) -> None:
        super().__init__(backend, caller)
        self._templates = {kind: load_prompt_template(name) for kind, name in self.TEMPLATES.items()}

    def run(self, job: ReportJob) -> ReportJob:
        fields = {"project_name": job.project.name, "extracted_text": job.extracted_text}
        if job.kind is ReportKind.COMPLIANCE:
            job.reporter.status("Loading compliance rules...")
            fields["rules"] = load_rule_corpus()
        prompt = self._templates[job.kind].format(**fields)
        request = GenerationRequest(contents=[Message(role="user", parts=[TextPart(text=prompt)])])
        job.reporter.status(f"Generating {REPORT_TITLES[job.kind]} (HTML)...")
        job.rendered_markup = self._generate(job, request, "Report generation")
        job.reporter.status(f"{REPORT_TITLES[job.kind]} generated.")
        return job


class NormalizeStep(ReportStep):
    stage = "normalize"

    def run(self, job: ReportJob) -> ReportJob:
        job.rendered_markup = strip_code_fences(job.rendered_markup)
        return job


class RenderStep(ReportStep):
    stage = "render"

    def __init__(self, renderer: BaseRenderer, options: RenderOptions | None = None) -> None:
        self._renderer = renderer
        self._options = options or RenderOptions()

    def run(self, job: ReportJob) -> ReportJob:
        job.reporter.status("Creating PDF document from HTML...")
        document = wrap_in_template(job.rendered_markup, title=REPORT_TITLES[job.kind])
        job.artifact_bytes = self._renderer.render_to_document(document, self._options)
        job.reporter.status("PDF created.")
        return job


class PublishStep(ReportStep):
    stage = "publish"

    def __init__(
        self,
        storage: BaseObjectStorage,
        signed_url_ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._storage = storage
        self._signed_url_ttl_seconds = signed_url_ttl_seconds
        self._clock = clock

    def run(self, job: ReportJob) -> ReportJob:
        job.reporter.status("Uploading report...")
        millis = int(self._clock() * 1000)
        prefix = REPORT_FILE_PREFIXES[job.kind]
        locator = self._storage.locator_for(
            f"temp-reports/{prefix}_report_{job.project.id}_{millis}.pdf"
        )
        self._storage.upload(job.artifact_bytes, locator, "application/pdf")
        job.reporter.status("Generating download link...")
        job.artifact_locator = self._storage.issue_signed_url(
            locator, self._signed_url_ttl_seconds
        )
        Log.info(f"Published {job.kind.value} report for project {job.project.id} at {locator}")
        return job
