"""Error types shared by the generation and persistence layers."""

from typing import Optional


class GenerationError(RuntimeError):
    """Base class for failures raised by a generation provider call."""

    def __init__(self, message: str, *, capability: Optional[str] = None) -> None:
        super().__init__(message)
        self.capability = capability


class GenerationConfigError(GenerationError):
    """A provider credential or setting is missing. Never retryable."""


class GenerationProviderError(GenerationError):
    """The provider was unreachable, answered with an error, or sent a malformed body."""

    def __init__(
        self,
        message: str,
        *,
        capability: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, capability=capability)
        self.status_code = status_code


class PersistenceError(RuntimeError):
    """A read or write against the chat database failed."""


class SessionAccessError(PersistenceError):
    """The session does not exist or is not owned by the requesting user."""

    def __init__(self, session_id: str, user_id: str) -> None:
        super().__init__(f"Session {session_id} not found for user {user_id}")
        self.session_id = session_id
        self.user_id = user_id
