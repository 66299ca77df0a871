"""
Transcription providers.

Each provider knows its credentials, its request shape and how to
normalize its response. Transport (direct or proxied) is injected.
"""

from abc import ABC, abstractmethod

from ..credentials import CredentialResolver
from ..transport import Transport
from ..types import AudioHandle, ProviderCredentials, TranscriptionResult


# Raised while normalizing a 2xx body that has the wrong shape
MALFORMED_RESPONSE_ERRORS = (TypeError, ValueError, KeyError, AttributeError)


class Provider(ABC):
    """
    Base class for transcription providers.

    Subclasses must implement:
    - credentials(): Resolve key and base URL (raises ConfigurationError)
    - transcribe(): Send audio, return a normalized result (raises ProviderError)
    """

    name: str = "base"

    def __init__(self, transport: Transport, resolver: CredentialResolver):
        self.transport = transport
        self.resolver = resolver

    @abstractmethod
    def credentials(self) -> ProviderCredentials:
        pass

    @abstractmethod
    def transcribe(
        self,
        audio: bytes,
        handle: AudioHandle,
        credentials: ProviderCredentials,
    ) -> TranscriptionResult:
        """
        Transcribe audio to text.

        Args:
            audio: Raw bytes of the recording
            handle: The handle the bytes came from (MIME type, upload name)
            credentials: Output of credentials()

        Returns:
            Normalized TranscriptionResult
        """
        pass
