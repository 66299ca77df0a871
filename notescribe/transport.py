"""
Platform transports for provider calls and audio access.

DirectTransport (native) calls the providers over HTTPS and reads audio
from local files. ProxiedTransport (web) routes the same logical calls
through the same-origin proxy and reads audio from the BlobStore. The
transcriber is written once against the Transport interface.
"""

import os
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from .blobs import BlobStore
from .errors import InvalidInputError, ProviderError
from .types import AudioHandle, ProviderCredentials, FILE, BLOB


WHISPER = "whisper"
GEMINI = "gemini"

_LABELS = {WHISPER: "Whisper", GEMINI: "Gemini"}

NATIVE_TIMEOUT = 30.0
PROXY_TIMEOUT = 60.0
DEFAULT_PROXY_URL = "http://localhost:3001"


def is_rate_limit(status: Optional[int], message: str) -> bool:
    """True for HTTP 429 or a provider message mentioning a rate limit."""
    return status == 429 or "rate limit" in message.lower()


def _error_message(response: requests.Response) -> str:
    """Best-effort error text from a provider or proxy error body."""
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip()[:200] or response.reason or "unknown error"

    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    if error:
        return str(error)
    return response.reason or "unknown error"


class Transport(ABC):
    """
    How provider requests leave the process and how audio is read.

    Subclasses must implement:
    - audio_exists(), read_audio(), audio_size()
    - speech_request(): (url, headers) for the speech provider
    - generate_request(): (url, headers) for the generative provider
    """

    name: str = "base"

    def __init__(self, timeout: float, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    # Audio access

    @abstractmethod
    def audio_exists(self, handle: AudioHandle) -> bool:
        pass

    @abstractmethod
    def read_audio(self, handle: AudioHandle) -> bytes:
        pass

    @abstractmethod
    def audio_size(self, handle: AudioHandle) -> int:
        pass

    # Provider calls

    @abstractmethod
    def speech_request(self, credentials: ProviderCredentials) -> tuple:
        pass

    @abstractmethod
    def generate_request(self, credentials: ProviderCredentials, model: str) -> tuple:
        pass

    def post_speech(
        self,
        audio: bytes,
        handle: AudioHandle,
        credentials: ProviderCredentials,
        model: str,
        language: str,
    ) -> Dict[str, Any]:
        """Multipart upload to the speech provider. Returns the JSON body."""
        url, headers = self.speech_request(credentials)
        return self._post(
            WHISPER,
            url,
            headers=headers,
            files={"file": (handle.filename, audio, handle.mime_type)},
            data={"model": model, "language": language},
        )

    def post_generate(
        self,
        body: Dict[str, Any],
        credentials: ProviderCredentials,
        model: str,
    ) -> Dict[str, Any]:
        """JSON request to the generative provider. Returns the JSON body."""
        url, headers = self.generate_request(credentials, model)
        headers = {**headers, "Content-Type": "application/json"}
        return self._post(GEMINI, url, headers=headers, json=body)

    def _post(self, provider: str, url: str, **kwargs) -> Dict[str, Any]:
        label = _LABELS.get(provider, provider)

        try:
            response = self.session.post(url, timeout=self.timeout, **kwargs)
        except requests.Timeout:
            raise ProviderError(provider, f"{label} request timed out after {self.timeout:g}s")
        except requests.RequestException as e:
            raise ProviderError(provider, f"{label} request failed: {e}")

        if not response.ok:
            message = _error_message(response)
            raise ProviderError(
                provider,
                f"{label} API error ({response.status_code}): {message}",
                status=response.status_code,
                rate_limited=is_rate_limit(response.status_code, message),
            )

        try:
            payload = response.json()
        except ValueError:
            raise ProviderError(provider, f"{label} returned a non-JSON response", status=response.status_code)

        if not isinstance(payload, dict):
            raise ProviderError(provider, f"{label} returned an unexpected response", status=response.status_code)
        return payload

    def close(self) -> None:
        self.session.close()


class DirectTransport(Transport):
    """Native target: direct HTTPS calls, audio in local files."""

    name = "direct"

    def __init__(self, timeout: float = NATIVE_TIMEOUT, session: Optional[requests.Session] = None):
        super().__init__(timeout, session)

    def _check_kind(self, handle: AudioHandle) -> None:
        if handle.kind != FILE:
            raise InvalidInputError(f"Native transport cannot read {handle.kind} handles")

    def audio_exists(self, handle: AudioHandle) -> bool:
        return handle.kind == FILE and os.path.isfile(handle.uri)

    def read_audio(self, handle: AudioHandle) -> bytes:
        self._check_kind(handle)
        with open(handle.uri, "rb") as f:
            return f.read()

    def audio_size(self, handle: AudioHandle) -> int:
        self._check_kind(handle)
        return os.path.getsize(handle.uri)

    def speech_request(self, credentials: ProviderCredentials) -> tuple:
        url = f"{credentials.base_url}/audio/transcriptions"
        return url, {"Authorization": f"Bearer {credentials.api_key}"}

    def generate_request(self, credentials: ProviderCredentials, model: str) -> tuple:
        url = f"{credentials.base_url}/models/{model}:generateContent"
        return url, {"x-goog-api-key": credentials.api_key}


class ProxiedTransport(Transport):
    """
    Web target: calls go through the same-origin proxy with the key in
    x-api-key, audio lives in the BlobStore.
    """

    name = "proxied"

    def __init__(
        self,
        blobs: BlobStore,
        proxy_url: str = DEFAULT_PROXY_URL,
        timeout: float = PROXY_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(timeout, session)
        self.blobs = blobs
        self.proxy_url = proxy_url.rstrip("/")

    def _check_kind(self, handle: AudioHandle) -> None:
        if handle.kind != BLOB:
            raise InvalidInputError(f"Web transport cannot read {handle.kind} handles")

    def audio_exists(self, handle: AudioHandle) -> bool:
        return handle.kind == BLOB and self.blobs.exists(handle.uri)

    def read_audio(self, handle: AudioHandle) -> bytes:
        self._check_kind(handle)
        try:
            return self.blobs.read(handle.uri)
        except KeyError:
            raise InvalidInputError(f"Blob {handle.uri} was revoked")

    def audio_size(self, handle: AudioHandle) -> int:
        self._check_kind(handle)
        size = self.blobs.size(handle.uri)
        if size is None:
            return handle.size or 0
        return size

    def speech_request(self, credentials: ProviderCredentials) -> tuple:
        return f"{self.proxy_url}/api/whisper", {"x-api-key": credentials.api_key}

    def generate_request(self, credentials: ProviderCredentials, model: str) -> tuple:
        return f"{self.proxy_url}/api/gemini", {"x-api-key": credentials.api_key}
