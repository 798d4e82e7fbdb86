from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from doclyze.backend.models import InlineDataPart
from doclyze.domain.models import Document, Project, ReportKind
from doclyze.progress.reporter import ProgressReporter


@dataclass(slots=True)
class ReportJob:
    """Transient state of one report run, owned by that run only."""

    project: Project
    kind: ReportKind
    reporter: ProgressReporter
    sources: list[Document] = field(default_factory=list)
    inputs: list[InlineDataPart] = field(default_factory=list)
    extracted_text: str = ""
    rendered_markup: str = ""
    artifact_bytes: bytes = b""
    artifact_locator: str = ""


class ReportStep(ABC):
    stage: str = "report"

    @abstractmethod
    def run(self, job: ReportJob) -> ReportJob:
        raise NotImplementedError
