"""User-facing failure messages for report runs and chat turns.

Raw error text is logged but never sent to the client. The message is chosen
by matching the error (and its causes) against known categories, falling back
to the failing stage's own message.
"""

from collections.abc import Iterator

from doclyze.backend.exceptions import InvalidInputError, RateLimitedError, SafetyRejectionError
from doclyze.reports.exceptions import NoSourcesError

SAFETY_MESSAGE = (
    "The AI service declined to process these documents because of its content "
    "safety filters."
)
INVALID_INPUT_MESSAGE = "One or more documents are in a format the AI service cannot process."
RATE_LIMIT_MESSAGE = "The AI service is busy right now. Please try again in a few minutes."
NO_SOURCES_MESSAGE = "No documents with stored files were found in this project."
GENERIC_MESSAGE = "An internal error occurred during report generation."

STAGE_MESSAGES: dict[str, str] = {
    "resolve_sources": "Could not load the project's documents.",
    "materialize_inputs": "Could not download one or more project files.",
    "extract": "Text extraction from the documents failed.",
    "synthesize": "Generating the report content failed.",
    "render": "Creating the PDF document failed.",
    "publish": "Saving the report failed.",
}

_SAFETY_PATTERNS = ("SAFETY", "blocked due to")
_INVALID_INPUT_PATTERNS = ("400 Bad Request", "Unsupported MIME type", "invalid argument")
_RATE_LIMIT_PATTERNS = ("RESOURCE_EXHAUSTED", "rate limit", "429")


def user_facing_message(exc: BaseException, stage: str | None) -> str:
    """Pick the categorized message for a failure in ``stage``."""
    if any(isinstance(error, NoSourcesError) for error in _cause_chain(exc)):
        return NO_SOURCES_MESSAGE
    return categorized_message(exc) or STAGE_MESSAGES.get(stage or "", GENERIC_MESSAGE)


def categorized_message(exc: BaseException) -> str | None:
    """Message for safety, invalid-input and rate-limit failures; None otherwise."""
    chain = list(_cause_chain(exc))
    if _matches(chain, SafetyRejectionError, _SAFETY_PATTERNS):
        return SAFETY_MESSAGE
    if _matches(chain, InvalidInputError, _INVALID_INPUT_PATTERNS):
        return INVALID_INPUT_MESSAGE
    if _matches(chain, RateLimitedError, _RATE_LIMIT_PATTERNS):
        return RATE_LIMIT_MESSAGE
    return None


def _cause_chain(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _matches(
    chain: list[BaseException],
    error_type: type[BaseException],
    patterns: tuple[str, ...],
) -> bool:
    for error in chain:
        if isinstance(error, error_type):
            return True
        message = str(error).lower()
        if any(pattern.lower() in message for pattern in patterns):
            return True
    return False
