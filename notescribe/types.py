"""
Shared type definitions for NoteScribe.
"""

import os
from dataclasses import dataclass, field
from typing import Optional, List


# Platforms (chosen once when the runtime context is built)
NATIVE = "native"
WEB = "web"
PLATFORMS = (NATIVE, WEB)

# Handle kinds
FILE = "file"
BLOB = "blob"

DEFAULT_MIME_TYPE = "audio/m4a"

MIME_TYPES = {
    "m4a": "audio/m4a",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "mpeg": "audio/mpeg",
    "mp4": "audio/mp4",
    "webm": "audio/webm",
}

# Reverse lookup used when naming uploads
EXTENSIONS = {
    "audio/m4a": "m4a",
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
    "audio/mp4": "mp4",
    "audio/webm": "webm",
}


def mime_type_for(uri: str) -> str:
    """MIME type from the URI's extension, audio/m4a when unknown."""
    _, ext = os.path.splitext(uri)
    return MIME_TYPES.get(ext.lstrip(".").lower(), DEFAULT_MIME_TYPE)


@dataclass
class AudioHandle:
    """
    Reference to recorded audio waiting to be transcribed.

    kind is "file" (uri is a local path) or "blob" (uri is a blob:<id>
    reference into the BlobStore). size is exact for files and best-effort
    for blobs.
    """
    uri: str
    kind: str = FILE
    mime_type: str = DEFAULT_MIME_TYPE
    size: Optional[int] = None

    @classmethod
    def from_path(cls, path: str) -> "AudioHandle":
        """Build a file handle, reading the size when the file exists."""
        size = os.path.getsize(path) if os.path.isfile(path) else None
        return cls(uri=path, kind=FILE, mime_type=mime_type_for(path), size=size)

    @property
    def filename(self) -> str:
        """Upload name, e.g. audio.m4a."""
        return f"audio.{EXTENSIONS.get(self.mime_type, 'm4a')}"


@dataclass
class Segment:
    """A timed slice of a transcript, provider-supplied or synthesized."""
    index: int
    text: str
    start: float
    end: float
    confidence: float


@dataclass
class TranscriptionResult:
    """Normalized transcription from whichever provider succeeded."""
    text: str
    confidence: float
    language: str
    duration: float
    segments: List[Segment] = field(default_factory=list)
    provider: str = ""


@dataclass
class ProviderAttempt:
    """One provider dispatch, kept only for fallback decisions and error messages."""
    provider: str
    succeeded: bool
    error: Optional[str] = None


@dataclass
class ProviderCredentials:
    """Key and base URL for one provider call."""
    api_key: str
    base_url: str


@dataclass
class CompiledNote:
    """Structured note produced from a transcript."""
    title: str
    content: str
    procedure_type: str
    tags: List[str] = field(default_factory=list)


@dataclass
class Note:
    """A persisted note, always owned by one user."""
    title: str
    content: str
    transcription: str
    procedure_type: str = ""
    tags: List[str] = field(default_factory=list)
    audio_url: str = ""
    id: str = ""
    user_id: str = ""
    created_at: str = ""                # ISO format
    updated_at: str = ""


@dataclass
class NotePage:
    """One page of a user's notes, newest first."""
    items: List[Note]
    has_more: bool
