class ReportError(Exception):
    """Base exception for report generation failures."""


class NoSourcesError(ReportError):
    """Raised when a project has no documents with stored files."""


class PromptLoadError(ReportError):
    """Raised when a prompt template or rule corpus cannot be read."""


class MissingArtifactError(ReportError):
    """Raised when the pipeline finished without an artifact locator."""
