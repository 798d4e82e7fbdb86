import json

from doclyze.progress.events import CompleteEvent, ErrorEvent, ProgressEvent, StatusEvent


def encode_sse(event: ProgressEvent) -> str:
    """Encode one progress event as a Server-Sent Events frame."""
    if isinstance(event, StatusEvent):
        return _frame({"status": event.text})
    if isinstance(event, CompleteEvent):
        return _frame({"downloadUrl": event.locator}, event_name="complete")
    if isinstance(event, ErrorEvent):
        return _frame({"message": event.message}, event_name="error")
    raise TypeError(f"Unknown progress event: {event!r}")


def _frame(payload: dict[str, str], event_name: str | None = None) -> str:
    prefix = f"event: {event_name}\n" if event_name else ""
    return f"{prefix}data: {json.dumps(payload)}\n\n"
