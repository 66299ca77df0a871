"""
OpenAI Whisper provider (primary).
"""

import time

from . import Provider, MALFORMED_RESPONSE_ERRORS
from ..credentials import CredentialResolver
from ..errors import ProviderError
from ..normalize import normalize_whisper
from ..transport import Transport, WHISPER
from ..types import AudioHandle, ProviderCredentials, TranscriptionResult


# Every OpenAI secret key starts with this
OPENAI_KEY_PREFIX = "sk-"


class WhisperProvider(Provider):
    """Speech-specific transcription via the audio/transcriptions endpoint."""

    name = WHISPER

    def __init__(
        self,
        transport: Transport,
        resolver: CredentialResolver,
        model: str = "whisper-1",
        language: str = "en",
    ):
        super().__init__(transport, resolver)
        self.model = model
        self.language = language

    def credentials(self) -> ProviderCredentials:
        return self.resolver.openai()

    def transcribe(
        self,
        audio: bytes,
        handle: AudioHandle,
        credentials: ProviderCredentials,
    ) -> TranscriptionResult:
        if not credentials.api_key.startswith(OPENAI_KEY_PREFIX):
            raise ProviderError(
                self.name, f'Invalid OpenAI API key format. API keys should start with "{OPENAI_KEY_PREFIX}"',
            )

        start = time.perf_counter()
        try:
            payload = self.transport.post_speech(
                audio, handle, credentials, model=self.model, language=self.language,
            )
        except ProviderError as e:
            if e.status == 401:
                raise ProviderError(
                    self.name, "Invalid OpenAI API key. Please check your configuration.", status=401,
                ) from e
            raise

        try:
            result = normalize_whisper(payload, len(audio))
        except MALFORMED_RESPONSE_ERRORS as e:
            raise ProviderError(self.name, f"Whisper returned a malformed response: {e}") from e

        print(f"[{self.name}] {len(result.text)} chars in {time.perf_counter() - start:.2f}s")
        return result
