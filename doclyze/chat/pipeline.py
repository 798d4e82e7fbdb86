"""Retrieval-augmented chat over a project's documents.

embed -> similarity search -> compose -> streaming generation -> transcript.
The reply is a plain text stream; an error is signalled in-band by a single
chunk starting with ``CHAT_ERROR_SENTINEL``.
"""

from collections.abc import Iterator

from doclyze.backend.base import BaseAIBackend
from doclyze.backend.exceptions import BackendUnavailableError
from doclyze.backend.models import ContentPart, FileRefPart, GenerationRequest, Message, TextPart
from doclyze.database.repositories.document_repository import DocumentRepository
from doclyze.database.repositories.project_repository import ProjectRepository
from doclyze.domain.models import Document, ProcessingState, Project, TranscriptRole, TranscriptTurn
from doclyze.logging.logger import Log
from doclyze.reports.messages import categorized_message
from doclyze.reports.prompt_loader import load_prompt_template
from doclyze.retry.retryable_caller import RetryableCaller
from doclyze.search.base import BaseSimilaritySearch, SearchMatch

CHAT_ERROR_SENTINEL = "__ERROR__:"
CHAT_GENERIC_MESSAGE = "Sorry, something went wrong while generating the answer. Please try again."


class ChatPipeline:
    def __init__(
        self,
        backend: BaseAIBackend | None,
        search: BaseSimilaritySearch | None,
        caller: RetryableCaller,
        project_repo: ProjectRepository,
        document_repo: DocumentRepository,
        top_k: int = 5,
        history_turns: int = 10,
    ) -> None:
        self._backend = backend
        self._search = search
        self._caller = caller
        self._project_repo = project_repo
        self._document_repo = document_repo
        self._top_k = top_k
        self._history_turns = history_turns
        self._system_template = load_prompt_template("chat_system")

    def respond(
        self,
        project: Project,
        message: str,
        recent_history: list[TranscriptTurn] | None = None,
    ) -> Iterator[str]:
        """Stream the model's reply chunk by chunk.

        ``recent_history`` defaults to the tail of the stored transcript. Both
        turns are appended to the transcript only when the stream completes.
        """
        reply: list[str] = []
        try:
            backend = self._backend
            if backend is None:
                raise BackendUnavailableError("AI backend is not configured")
            history = self._history(project, recent_history)
            passages = self._retrieve(project, message)
            documents = self._active_documents(project)
            request = self._compose(project, message, history, passages, documents)
            stream = self._caller.call_stream(lambda: backend.generate_stream(request))
            for chunk in stream:
                reply.append(chunk)
                yield chunk
        except Exception as exc:
            Log.exception(f"Chat turn for project {project.id} failed: {exc}")
            yield CHAT_ERROR_SENTINEL + (categorized_message(exc) or CHAT_GENERIC_MESSAGE)
            return

        self._persist(project.id, message, "".join(reply))

    def _history(
        self, project: Project, recent_history: list[TranscriptTurn] | None
    ) -> list[TranscriptTurn]:
        turns = project.transcript if recent_history is None else recent_history
        if self._history_turns <= 0:
            return []
        return list(turns[-self._history_turns :])

    def _retrieve(self, project: Project, message: str) -> list[SearchMatch]:
        """Similar passages for the message; any failure degrades to none."""
        if self._search is None or self._backend is None:
            return []
        try:
            vector = self._backend.embed(message)
            matches = self._search.query(vector, self._top_k, {"project_id": project.id})
        except Exception as exc:
            Log.warning(f"Retrieval failed for project {project.id}, answering without passages: {exc}")
            return []
        Log.debug(f"Retrieved {len(matches)} passages for project {project.id}")
        return matches

    def _active_documents(self, project: Project) -> list[Document]:
        try:
            documents = self._document_repo.list_for_project(project.id)
        except Exception as exc:
            Log.warning(f"Could not list documents of project {project.id}: {exc}")
            return []
        return [
            document
            for document in documents
            if document.processing_state is ProcessingState.ACTIVE and document.remote_handle
        ]

    def _compose(
        self,
        project: Project,
        message: str,
        history: list[TranscriptTurn],
        passages: list[SearchMatch],
        documents: list[Document],
    ) -> GenerationRequest:
        system_instruction = self._system_template.format(
            project_name=project.name,
            file_names=", ".join(d.file_name for d in documents) or "none yet",
        )
        contents = [
            Message(role=turn.role.value, parts=[TextPart(text=turn.text)]) for turn in history
        ]
        parts: list[ContentPart] = [
            FileRefPart(file_name=d.remote_handle) for d in documents if d.remote_handle
        ]
        if passages:
            parts.append(TextPart(text=_format_passages(passages)))
        parts.append(TextPart(text=message))
        contents.append(Message(role=TranscriptRole.USER.value, parts=parts))
        return GenerationRequest(contents=contents, system_instruction=system_instruction)

    def _persist(self, project_id: int, message: str, reply: str) -> None:
        try:
            self._project_repo.append_transcript(
                project_id,
                [
                    TranscriptTurn(role=TranscriptRole.USER, text=message),
                    TranscriptTurn(role=TranscriptRole.MODEL, text=reply),
                ],
            )
            Log.info(f"Chat history saved for project {project_id}")
        except Exception as exc:
            Log.error(f"Failed to save chat history for project {project_id}: {exc}")


def _format_passages(passages: list[SearchMatch]) -> str:
    lines = ["Reference passages from the project documents:"]
    for index, match in enumerate(passages, start=1):
        source = match.metadata.get("file_name") or "unknown file"
        text = match.metadata.get("text", "")
        lines.append(f"[{index}] ({source}) {text}")
    return "\n".join(lines)
