"""Caller identity shared by every entry point.

The upstream authentication layer puts the signed-in user's id in
``X-User-ID``; anonymous sessions send their guest id in ``X-Guest-ID``.
An authenticated user wins when both are present.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from doclyze.domain.exceptions import AccessDeniedError, UnauthenticatedError
from doclyze.domain.models import Project

USER_HEADER = "X-User-ID"
GUEST_HEADER = "X-Guest-ID"


@dataclass(frozen=True)
class OwnerIdentity:
    user_id: str


@dataclass(frozen=True)
class GuestIdentity:
    guest_id: str


Identity = OwnerIdentity | GuestIdentity


def resolve_caller(headers: Mapping[str, str]) -> Identity:
    """Resolve the caller from request headers.

    Raises:
        UnauthenticatedError: if neither header carries a value.
    """
    user_id = _header(headers, USER_HEADER)
    if user_id:
        return OwnerIdentity(user_id=user_id)
    guest_id = _header(headers, GUEST_HEADER)
    if guest_id:
        return GuestIdentity(guest_id=guest_id)
    raise UnauthenticatedError("Request carries no user or guest identity")


def authorize_project(project: Project, identity: Identity) -> None:
    """Raise AccessDeniedError unless the caller owns the project."""
    if isinstance(identity, OwnerIdentity):
        allowed = project.owner_id is not None and project.owner_id == identity.user_id
    else:
        allowed = project.guest_owner_id is not None and project.guest_owner_id == identity.guest_id
    if not allowed:
        raise AccessDeniedError(f"Caller may not access project {project.id}")


def _header(headers: Mapping[str, str], name: str) -> str:
    value = headers.get(name)
    if value is None:
        value = headers.get(name.lower())
    return (value or "").strip()
