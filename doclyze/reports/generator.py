from concurrent.futures import ThreadPoolExecutor

from doclyze.domain.models import Project, ReportKind
from doclyze.logging.logger import Log
from doclyze.progress.reporter import ProgressReporter
from doclyze.reports.exceptions import MissingArtifactError
from doclyze.reports.messages import GENERIC_MESSAGE, user_facing_message
from doclyze.reports.pipeline import ReportJob, ReportStep
from doclyze.reports.steps import REPORT_TITLES


class ReportPipeline:
    """Runs report steps in order and reports progress through a ProgressReporter.

    Pipeline: resolve sources -> materialize -> extract -> synthesize ->
    normalize -> render -> publish. Exactly one terminal event is emitted per
    run, whatever happens inside the steps.
    """

    def __init__(self, steps: list[ReportStep], executor: ThreadPoolExecutor) -> None:
        self._steps = steps
        self._executor = executor

    def generate(self, project: Project, kind: ReportKind) -> ProgressReporter:
        """Start a run in the background and return its progress channel."""
        reporter = ProgressReporter(label=f"{kind.value}:{project.id}")
        try:
            self._executor.submit(self.run, project, kind, reporter)
        except RuntimeError as exc:
            Log.error(f"Could not start report {kind.value} for project {project.id}: {exc}")
            reporter.error(GENERIC_MESSAGE)
        return reporter

    def run(self, project: Project, kind: ReportKind, reporter: ProgressReporter) -> None:
        """Run every step synchronously. Never raises."""
        job = ReportJob(project=project, kind=kind, reporter=reporter)
        stage: str | None = None
        Log.info(f"Report {kind.value} started for project {project.id}")
        try:
            reporter.status(f"Initializing {REPORT_TITLES[kind]}...")
            for step in self._steps:
                stage = step.stage
                job = step.run(job)
            if not job.artifact_locator:
                raise MissingArtifactError("Pipeline finished without an artifact locator")
            reporter.complete(job.artifact_locator)
            Log.info(f"Report {kind.value} complete for project {project.id}")
        except Exception as exc:
            Log.exception(f"Report {kind.value} for project {project.id} failed at {stage}: {exc}")
            reporter.error(user_facing_message(exc, stage))
        finally:
            reporter.ensure_terminal(GENERIC_MESSAGE)
