from fastapi import HTTPException, Request, status

from doclyze.auth.identity import Identity, authorize_project, resolve_caller
from doclyze.container import Services
from doclyze.domain.models import Project


def get_services(request: Request) -> Services:
    return request.app.state.services  # type: ignore[no-any-return]


def current_identity(request: Request) -> Identity:
    """FastAPI dependency: the caller behind the request (401 when anonymous)."""
    return resolve_caller(request.headers)


def load_authorized_project(
    services: Services,
    project_id: int,
    identity: Identity,
    transcript_limit: int | None = 0,
) -> Project:
    """Load a project the caller owns.

    Raises:
        ProjectNotFoundError: mapped to 404.
        AccessDeniedError: mapped to 403.
    """
    project = services.project_repo.find_by_id(project_id, transcript_limit=transcript_limit)
    authorize_project(project, identity)
    return project


def require_backend(services: Services) -> None:
    if services.backend is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI backend is not configured",
        )
