class BackendError(Exception):
    """Base exception for AI backend failures."""


class TransientBackendError(BackendError):
    """A failure that may succeed when the same call is attempted again."""


class RateLimitedError(TransientBackendError):
    """Raised when the backend reports quota or rate-limit exhaustion."""


class ServerUnavailableError(TransientBackendError):
    """Raised on 5xx / service-unavailable responses."""


class BackendNetworkError(TransientBackendError):
    """Raised when the call fails at the transport level."""


class TerminalBackendError(BackendError):
    """A failure that repeating the same call cannot fix."""


class SafetyRejectionError(TerminalBackendError):
    """Raised when the backend refuses the content on policy grounds."""


class InvalidInputError(TerminalBackendError):
    """Raised when the request or one of its files is malformed or unsupported."""


class BackendAuthError(TerminalBackendError):
    """Raised when the backend rejects the credentials."""


class EmptyGenerationError(TerminalBackendError):
    """Raised when the backend answers without any text."""


class StreamInterruptedError(BackendError):
    """Raised when a stream fails after data has started flowing."""


class BackendUnavailableError(BackendError):
    """Raised when no AI backend is configured."""
