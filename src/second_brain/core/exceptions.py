"""
Domain Exceptions

Error taxonomy shared by services, repositories and the API layer.
Each exception carries the HTTP status it maps to and a message that is
safe to return to the caller. Handlers in ``second_brain.main`` do the
conversion.
"""

from __future__ import annotations


class SecondBrainError(Exception):
    """Base class for all expected application failures."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.public_message = message or self.default_message
        super().__init__(self.public_message)


class ValidationError(SecondBrainError):
    """Bad or missing input. The client's fault, never retried."""

    status_code = 400
    default_message = "Invalid request"


class AuthError(SecondBrainError):
    """No resolvable caller identity."""

    status_code = 401
    default_message = "Authentication required"


class EnrichmentError(SecondBrainError):
    """The LLM analysis call timed out, failed, or returned garbage."""

    status_code = 502
    default_message = "Analysis service unavailable"


class EmbeddingError(SecondBrainError):
    """The embedding call timed out, failed, or returned no vector."""

    status_code = 502
    default_message = "Failed to create embedding"


class PersistenceError(SecondBrainError):
    """
    Store connectivity or constraint failure.

    The public message stays generic so schema details never leak; the
    underlying driver error is chained via ``__cause__`` for the logs.
    """

    status_code = 500
    default_message = "Failed to access notes"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(self.default_message)
        self.detail = detail
