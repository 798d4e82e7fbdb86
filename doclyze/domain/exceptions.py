class DomainError(Exception):
    """Base exception for entity lookups and access checks."""


class DocumentNotFoundError(DomainError):
    """Raised when a document cannot be found in the database."""


class ProjectNotFoundError(DomainError):
    """Raised when a project cannot be found in the database."""


class UnauthenticatedError(DomainError):
    """Raised when a request carries neither a user nor a guest identity."""


class AccessDeniedError(DomainError):
    """Raised when the caller does not own the requested project."""
