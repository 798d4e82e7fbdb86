from unittest.mock import MagicMock

import pytest

from doclyze.backend.exceptions import (
    RateLimitedError,
    SafetyRejectionError,
    StreamInterruptedError,
)
from doclyze.backend.models import FileRefPart, TextPart
from doclyze.chat.pipeline import CHAT_ERROR_SENTINEL, CHAT_GENERIC_MESSAGE, ChatPipeline
from doclyze.domain.models import ProcessingState, TranscriptRole, TranscriptTurn
from doclyze.reports.messages import RATE_LIMIT_MESSAGE, SAFETY_MESSAGE
from doclyze.retry.retryable_caller import RetryableCaller
from doclyze.search.base import SearchMatch
from doclyze.search.exceptions import SearchError


@pytest.fixture()
def backend() -> MagicMock:
    backend = MagicMock()
    backend.embed.return_value = [0.1, 0.2, 0.3]
    backend.generate_stream.side_effect = lambda request: iter(["The beam ", "is W12x26."])
    return backend


@pytest.fixture()
def search() -> MagicMock:
    search = MagicMock()
    search.query.return_value = [
        SearchMatch(score=0.91, metadata={"file_name": "S-201.pdf", "text": "Beam B1: W12x26"})
    ]
    return search


def _pipeline(backend, search, project_repo, document_repo, **kwargs) -> ChatPipeline:
    caller = RetryableCaller(max_attempts=3, sleep=MagicMock())
    return ChatPipeline(backend, search, caller, project_repo, document_repo, **kwargs)


def _sent_request(backend: MagicMock):
    return backend.generate_stream.call_args.args[0]


class TestChatPipelineAnswers:
    def test_streams_reply_chunks(
        self, backend, search, project_repo, document_repo, project
    ) -> None:
        chunks = list(
            _pipeline(backend, search, project_repo, document_repo).respond(project, "Beam size?")
        )
        assert chunks == ["The beam ", "is W12x26."]

    def test_persists_both_turns_after_success(
        self, backend, search, project_repo, document_repo, project
    ) -> None:
        list(_pipeline(backend, search, project_repo, document_repo).respond(project, "Beam size?"))

        assert project_repo.appended == [
            (
                10,
                [
                    TranscriptTurn(role=TranscriptRole.USER, text="Beam size?"),
                    TranscriptTurn(role=TranscriptRole.MODEL, text="The beam is W12x26."),
                ],
            )
        ]

    def test_retrieval_filtered_by_project(
        self, backend, search, project_repo, document_repo, project
    ) -> None:
        list(
            _pipeline(backend, search, project_repo, document_repo, top_k=3).respond(
                project, "Beam size?"
            )
        )

        search.query.assert_called_once_with([0.1, 0.2, 0.3], 3, {"project_id": 10})
        user_parts = _sent_request(backend).contents[-1].parts
        assert "Beam B1: W12x26" in user_parts[0].text
        assert user_parts[-1] == TextPart(text="Beam size?")

    def test_search_failure_still_answers(
        self, backend, search, project_repo, document_repo, project
    ) -> None:
        search.query.side_effect = SearchError("index offline")

        chunks = list(
            _pipeline(backend, search, project_repo, document_repo).respond(project, "Beam size?")
        )

        assert chunks == ["The beam ", "is W12x26."]
        assert _sent_request(backend).contents[-1].parts == [TextPart(text="Beam size?")]

    def test_answers_without_search_adapter(
        self, backend, project_repo, document_repo, project
    ) -> None:
        chunks = list(
            _pipeline(backend, None, project_repo, document_repo).respond(project, "Hi")
        )
        assert "".join(chunks) == "The beam is W12x26."
        backend.embed.assert_not_called()

    def test_active_documents_attached_as_file_references(
        self, backend, search, project_repo, document_repo, project, make_document
    ) -> None:
        document_repo.add(
            make_document(1, processing_state=ProcessingState.ACTIVE, remote_handle="files/r1")
        )
        document_repo.add(make_document(2, processing_state=ProcessingState.FAILED))
        document_repo.add(make_document(3))

        list(_pipeline(backend, search, project_repo, document_repo).respond(project, "Hi"))

        request = _sent_request(backend)
        assert request.contents[-1].parts[0] == FileRefPart(file_name="files/r1")
        assert "drawing-1.pdf" in request.system_instruction
        assert "drawing-2.pdf" not in request.system_instruction

    def test_history_is_bounded(self, backend, search, project_repo, document_repo, project) -> None:
        history = [
            TranscriptTurn(role=TranscriptRole.USER if i % 2 == 0 else TranscriptRole.MODEL, text=f"t{i}")
            for i in range(6)
        ]

        list(
            _pipeline(backend, search, project_repo, document_repo, history_turns=4).respond(
                project, "Hi", recent_history=history
            )
        )

        contents = _sent_request(backend).contents
        assert [m.parts[0].text for m in contents[:-1]] == ["t2", "t3", "t4", "t5"]
        assert [m.role for m in contents[:-1]] == ["user", "model", "user", "model"]

    def test_stream_initiation_is_retried(
        self, backend, search, project_repo, document_repo, project
    ) -> None:
        backend.generate_stream.side_effect = [RateLimitedError("quota"), iter(["ok"])]

        chunks = list(_pipeline(backend, search, project_repo, document_repo).respond(project, "Hi"))

        assert chunks == ["ok"]
        assert backend.generate_stream.call_count == 2

    def test_transcript_failure_does_not_break_reply(
        self, backend, search, project_repo, document_repo, project
    ) -> None:
        project_repo.append_transcript = MagicMock(side_effect=RuntimeError("db down"))

        chunks = list(_pipeline(backend, search, project_repo, document_repo).respond(project, "Hi"))

        assert chunks == ["The beam ", "is W12x26."]


class TestChatPipelineErrors:
    def test_missing_backend_yields_sentinel(
        self, search, project_repo, document_repo, project
    ) -> None:
        chunks = list(_pipeline(None, search, project_repo, document_repo).respond(project, "Hi"))

        assert chunks == [CHAT_ERROR_SENTINEL + CHAT_GENERIC_MESSAGE]
        assert project_repo.appended == []

    def test_safety_rejection_yields_categorized_sentinel(
        self, backend, search, project_repo, document_repo, project
    ) -> None:
        backend.generate_stream.side_effect = SafetyRejectionError("blocked")

        chunks = list(_pipeline(backend, search, project_repo, document_repo).respond(project, "Hi"))

        assert chunks == [CHAT_ERROR_SENTINEL + SAFETY_MESSAGE]
        assert backend.generate_stream.call_count == 1

    def test_exhausted_rate_limit_yields_rate_limit_sentinel(
        self, backend, search, project_repo, document_repo, project
    ) -> None:
        backend.generate_stream.side_effect = RateLimitedError("quota")

        chunks = list(_pipeline(backend, search, project_repo, document_repo).respond(project, "Hi"))

        assert chunks == [CHAT_ERROR_SENTINEL + RATE_LIMIT_MESSAGE]

    def test_mid_stream_failure_ends_with_sentinel_and_skips_transcript(
        self, backend, search, project_repo, document_repo, project
    ) -> None:
        def broken(request):
            yield "partial "
            raise StreamInterruptedError("connection reset")

        backend.generate_stream.side_effect = broken

        chunks = list(_pipeline(backend, search, project_repo, document_repo).respond(project, "Hi"))

        assert chunks[0] == "partial "
        assert chunks[-1].startswith(CHAT_ERROR_SENTINEL)
        assert len(chunks) == 2
        assert project_repo.appended == []
