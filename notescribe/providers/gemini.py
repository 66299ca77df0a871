"""
Google Gemini provider (secondary), a generative model repurposed for transcription.
"""

import base64
import time

from . import Provider, MALFORMED_RESPONSE_ERRORS
from ..credentials import CredentialResolver
from ..errors import ProviderError
from ..normalize import normalize_gemini
from ..transport import Transport, GEMINI
from ..types import AudioHandle, ProviderCredentials, TranscriptionResult


DEFAULT_PROMPT = "Transcribe this speech exactly as spoken. Return only the transcript."


class GeminiProvider(Provider):
    """
    Transcription through generateContent with the audio inlined as base64.
    """

    name = GEMINI

    def __init__(
        self,
        transport: Transport,
        resolver: CredentialResolver,
        model: str = "gemini-2.0-flash",
        prompt: str = DEFAULT_PROMPT,
        max_output_tokens: int = 2048,
    ):
        super().__init__(transport, resolver)
        self.model = model
        self.prompt = prompt
        self.max_output_tokens = max_output_tokens

    def credentials(self) -> ProviderCredentials:
        return self.resolver.gemini()

    def build_request(self, audio: bytes, handle: AudioHandle) -> dict:
        """JSON body with the prompt and the inline audio part."""
        return {
            "contents": [
                {
                    "parts": [
                        {"text": self.prompt},
                        {
                            "inline_data": {
                                "mime_type": handle.mime_type,
                                "data": base64.b64encode(audio).decode("utf-8"),
                            }
                        },
                    ]
                }
            ],
            "generationConfig": {
                "temperature": 0.0,
                "maxOutputTokens": self.max_output_tokens,
            },
        }

    def transcribe(
        self,
        audio: bytes,
        handle: AudioHandle,
        credentials: ProviderCredentials,
    ) -> TranscriptionResult:
        start = time.perf_counter()
        payload = self.transport.post_generate(
            self.build_request(audio, handle), credentials, model=self.model,
        )
        try:
            result = normalize_gemini(payload, len(audio))
        except MALFORMED_RESPONSE_ERRORS as e:
            raise ProviderError(self.name, f"Gemini returned a malformed response: {e}") from e

        print(f"[{self.name}] {len(result.text)} chars in {time.perf_counter() - start:.2f}s")
        return result
