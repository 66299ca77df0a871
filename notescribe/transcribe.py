"""
Transcription orchestration with provider fallback.

Flow:
    IDLE -> DISPATCHING_PRIMARY -> SUCCESS
                                -> RETRY_AS_FALLBACK -> DISPATCHING_SECONDARY -> SUCCESS | FAILED

Providers are tried strictly in order, one at a time. A success returns
immediately. Only exhaustion of both providers reaches the caller, as a
TranscriptionError carrying both causes.
"""

import time
from enum import Enum
from typing import Callable, List, NoReturn, Optional

from .errors import ConfigurationError, InvalidInputError, ProviderError, TranscriptionError
from .metrics import (
    MetricsWriter, log_provider_attempt, log_transcription_complete, log_transcription_failed,
)
from .providers import Provider
from .transport import Transport
from .types import AudioHandle, ProviderAttempt, ProviderCredentials, TranscriptionResult


# Pause before the fallback when the primary reported a rate limit
RATE_LIMIT_DELAY = 1.0


class TranscriberState(Enum):
    IDLE = "idle"
    DISPATCHING_PRIMARY = "dispatching_primary"
    RETRY_AS_FALLBACK = "retry_as_fallback"
    DISPATCHING_SECONDARY = "dispatching_secondary"
    SUCCESS = "success"
    FAILED = "failed"


def _label(provider: Provider) -> str:
    return provider.name.capitalize()


class Transcriber:
    """
    Turns an AudioHandle into a TranscriptionResult.

    Usage:
        transcriber = Transcriber(transport, WhisperProvider(...), GeminiProvider(...))
        result = transcriber.transcribe(handle)

    state and attempts describe the most recent call.
    """

    def __init__(
        self,
        transport: Transport,
        primary: Provider,
        secondary: Provider,
        sleep: Callable[[float], None] = time.sleep,
        metrics: Optional[MetricsWriter] = None,
    ):
        self.transport = transport
        self.primary = primary
        self.secondary = secondary
        self._sleep = sleep
        self.metrics = metrics

        self.state = TranscriberState.IDLE
        self.attempts: List[ProviderAttempt] = []

    def transcribe(self, handle: Optional[AudioHandle]) -> TranscriptionResult:
        """
        Transcribe with the primary provider, falling back to the secondary.

        Raises:
            InvalidInputError: handle is None or its audio does not exist
            TranscriptionError: both providers failed or could not be configured
        """
        self.state = TranscriberState.IDLE
        self.attempts = []

        audio = self._load(handle)
        print(f"[transcriber] Starting transcription of {handle.uri} ({len(audio)} bytes, {self.transport.name})")

        # Primary
        self.state = TranscriberState.DISPATCHING_PRIMARY
        primary_error = None
        try:
            credentials = self.primary.credentials()
        except ConfigurationError as e:
            primary_error = str(e)
            print(f"[transcriber] Skipping {self.primary.name}: {e}")
        else:
            try:
                return self._succeed(self._dispatch(self.primary, audio, handle, credentials))
            except ProviderError as e:
                primary_error = str(e)
                print(f"[transcriber] {self.primary.name} failed, trying {self.secondary.name}: {e}")
                if e.rate_limited:
                    print(f"[transcriber] Rate limit detected, waiting {RATE_LIMIT_DELAY:g}s")
                    self._sleep(RATE_LIMIT_DELAY)

        # Secondary
        self.state = TranscriberState.RETRY_AS_FALLBACK
        try:
            credentials = self.secondary.credentials()
        except ConfigurationError as e:
            self._fail(primary_error, str(e))

        self.state = TranscriberState.DISPATCHING_SECONDARY
        try:
            result = self._dispatch(self.secondary, audio, handle, credentials)
        except ProviderError as e:
            self._fail(primary_error, str(e))

        return self._succeed(result)

    def _load(self, handle: Optional[AudioHandle]) -> bytes:
        if handle is None:
            raise InvalidInputError("No audio handle provided for transcription")
        if not self.transport.audio_exists(handle):
            raise InvalidInputError(f"Audio {handle.uri} does not exist")
        try:
            return self.transport.read_audio(handle)
        except OSError as e:
            raise InvalidInputError(f"Could not read audio {handle.uri}: {e}")

    def _dispatch(
        self,
        provider: Provider,
        audio: bytes,
        handle: AudioHandle,
        credentials: ProviderCredentials,
    ) -> TranscriptionResult:
        start = time.perf_counter()
        try:
            result = provider.transcribe(audio, handle, credentials)
        except ProviderError as e:
            self.attempts.append(ProviderAttempt(provider.name, succeeded=False, error=str(e)))
            log_provider_attempt(
                self.metrics, provider.name, False, (time.perf_counter() - start) * 1000, str(e),
            )
            raise

        self.attempts.append(ProviderAttempt(provider.name, succeeded=True))
        log_provider_attempt(self.metrics, provider.name, True, (time.perf_counter() - start) * 1000)
        return result

    def _succeed(self, result: TranscriptionResult) -> TranscriptionResult:
        self.state = TranscriberState.SUCCESS
        log_transcription_complete(
            self.metrics,
            result.provider,
            chars=len(result.text),
            duration_s=result.duration,
            fallback_used=result.provider != self.primary.name,
        )
        return result

    def _fail(self, primary_error: Optional[str], secondary_error: str) -> NoReturn:
        self.state = TranscriberState.FAILED
        message = (
            "Transcription failed with both services. "
            "Please check your API keys and internet connection. "
            f"{_label(self.primary)} error: {(primary_error or 'not attempted').rstrip('.')}. "
            f"{_label(self.secondary)} error: {secondary_error}"
        )
        print(f"[transcriber] {message}")
        log_transcription_failed(self.metrics, message)
        raise TranscriptionError(message, self.attempts)
