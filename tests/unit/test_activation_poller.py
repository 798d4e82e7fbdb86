from unittest.mock import MagicMock

from doclyze.backend.models import FileHandle, RemoteFileState
from doclyze.preparation.poller import ActivationPoller


def _handle(state: RemoteFileState) -> FileHandle:
    return FileHandle(name="files/abc", state=state)


class TestActivationPoller:
    def test_already_active_returns_without_polling(self) -> None:
        backend = MagicMock()
        sleep = MagicMock()
        poller = ActivationPoller(backend, sleep=sleep)

        assert poller.poll_until_terminal(_handle(RemoteFileState.ACTIVE)) is RemoteFileState.ACTIVE
        backend.get_file.assert_not_called()
        sleep.assert_not_called()

    def test_polls_until_active(self) -> None:
        backend = MagicMock()
        backend.get_file.side_effect = [
            _handle(RemoteFileState.PROCESSING),
            _handle(RemoteFileState.ACTIVE),
        ]
        sleep = MagicMock()
        poller = ActivationPoller(backend, poll_interval_seconds=5.0, sleep=sleep)

        state = poller.poll_until_terminal(_handle(RemoteFileState.PROCESSING))

        assert state is RemoteFileState.ACTIVE
        assert backend.get_file.call_count == 2
        assert [c.args[0] for c in sleep.call_args_list] == [5.0, 5.0]

    def test_remote_failure_is_returned(self) -> None:
        backend = MagicMock()
        backend.get_file.return_value = _handle(RemoteFileState.FAILED)
        poller = ActivationPoller(backend, sleep=MagicMock())

        assert poller.poll_until_terminal(_handle(RemoteFileState.PROCESSING)) is (
            RemoteFileState.FAILED
        )

    def test_gives_up_at_ceiling(self) -> None:
        backend = MagicMock()
        backend.get_file.return_value = _handle(RemoteFileState.PROCESSING)
        poller = ActivationPoller(backend, max_attempts=3, sleep=MagicMock())

        state = poller.poll_until_terminal(_handle(RemoteFileState.PROCESSING))

        assert state is RemoteFileState.FAILED
        assert backend.get_file.call_count == 3

    def test_fetch_errors_are_tolerated(self) -> None:
        backend = MagicMock()
        backend.get_file.side_effect = [
            RuntimeError("temporary"),
            _handle(RemoteFileState.ACTIVE),
        ]
        poller = ActivationPoller(backend, sleep=MagicMock())

        assert poller.poll_until_terminal(_handle(RemoteFileState.PROCESSING)) is (
            RemoteFileState.ACTIVE
        )

    def test_per_call_overrides(self) -> None:
        backend = MagicMock()
        backend.get_file.return_value = _handle(RemoteFileState.PROCESSING)
        sleep = MagicMock()
        poller = ActivationPoller(backend, sleep=sleep)

        poller.poll_until_terminal(
            _handle(RemoteFileState.PROCESSING), poll_interval=0.5, max_attempts=2
        )

        assert [c.args[0] for c in sleep.call_args_list] == [0.5, 0.5]
