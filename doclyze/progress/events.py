from dataclasses import dataclass


@dataclass(frozen=True)
class StatusEvent:
    """Informational progress update."""

    text: str


@dataclass(frozen=True)
class CompleteEvent:
    """Terminal success carrying the artifact locator."""

    locator: str


@dataclass(frozen=True)
class ErrorEvent:
    """Terminal failure carrying a user-facing message."""

    message: str


ProgressEvent = StatusEvent | CompleteEvent | ErrorEvent


def is_terminal(event: ProgressEvent) -> bool:
    return isinstance(event, (CompleteEvent, ErrorEvent))
