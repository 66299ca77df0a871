"""
Error taxonomy for NoteScribe.

Provider-level failures (ProviderError) are handled inside the transcriber
and turned into fallback decisions. Everything else reaches the caller.
"""

from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .types import ProviderAttempt


class ScribeError(Exception):
    """Base class for all NoteScribe errors."""


class ConfigurationError(ScribeError):
    """A required credential or setting could not be resolved."""

    def __init__(self, name: str, message: Optional[str] = None):
        self.name = name
        super().__init__(
            message
            or f"{name} not configured. Set it in settings.json, the environment, or secure storage."
        )


class InvalidInputError(ScribeError):
    """The audio handle is missing or points at nothing."""


class MicrophonePermissionError(ScribeError, PermissionError):
    """The device refused microphone access."""


class AlreadyRecordingError(ScribeError):
    """start() was called while a session is active and restarts are disabled."""


class ProviderError(ScribeError):
    """
    A single provider call failed (network, timeout, non-2xx, rate limit).

    Attributes:
        provider: Provider name ("whisper", "gemini")
        status: HTTP status code, None for network errors and timeouts
        rate_limited: True when the provider reported a rate limit
    """

    def __init__(
        self,
        provider: str,
        message: str,
        status: Optional[int] = None,
        rate_limited: bool = False,
    ):
        self.provider = provider
        self.status = status
        self.rate_limited = rate_limited
        super().__init__(message)


class TranscriptionError(ScribeError):
    """Every provider was tried (or could not be configured) and none succeeded."""

    def __init__(self, message: str, attempts: Optional[List["ProviderAttempt"]] = None):
        self.attempts = list(attempts or [])
        super().__init__(message)


# GenerationError.kind values
KIND_CREDENTIALS = "credentials"
KIND_RATE_LIMIT = "rate_limit"
KIND_GENERIC = "generic"


class GenerationError(ScribeError):
    """Note compilation failed at the generative provider."""

    def __init__(self, message: str, status: Optional[int] = None, kind: str = KIND_GENERIC):
        self.status = status
        self.kind = kind
        super().__init__(message)


class NoteNotFoundError(ScribeError):
    """No note exists with the requested id."""


class AccessDeniedError(ScribeError):
    """The acting user does not own the requested note."""
