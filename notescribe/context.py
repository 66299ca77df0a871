"""
Runtime context: every long-lived object, built once and passed around.

The platform is decided here and nowhere else. Native gets a direct
transport and a file recorder; web gets the proxied transport, a blob
store and the chunk recorder.
"""

from dataclasses import dataclass
from typing import Optional

from .audio import BrowserRecorder, NativeRecorder, Recorder
from .blobs import BlobStore
from .config import Config
from .credentials import CredentialResolver
from .metrics import MetricsWriter
from .notes import NoteCompiler
from .providers.gemini import GeminiProvider
from .providers.whisper import WhisperProvider
from .storage import NoteStore
from .transcribe import Transcriber
from .transport import DirectTransport, ProxiedTransport, Transport


@dataclass
class ScribeContext:
    config: Config
    blobs: BlobStore
    credentials: CredentialResolver
    transport: Transport
    recorder: Recorder
    transcriber: Transcriber
    compiler: NoteCompiler
    store: NoteStore
    metrics: Optional[MetricsWriter] = None

    @classmethod
    def create(cls, config: Config, credentials: Optional[CredentialResolver] = None) -> "ScribeContext":
        blobs = BlobStore()
        credentials = credentials or CredentialResolver.from_config(config)
        metrics = MetricsWriter(config.metrics_file) if config.metrics_enabled else None

        transport: Transport
        recorder: Recorder
        if config.is_web:
            transport = ProxiedTransport(blobs, proxy_url=config.proxy_url, timeout=config.proxy_timeout)
            recorder = BrowserRecorder(blobs)
        else:
            transport = DirectTransport(timeout=config.native_timeout)
            recorder = NativeRecorder(config.recordings_dir)

        transcriber = Transcriber(
            transport,
            primary=WhisperProvider(
                transport, credentials, model=config.whisper_model, language=config.whisper_language,
            ),
            secondary=GeminiProvider(transport, credentials, model=config.gemini_model),
            metrics=metrics,
        )
        compiler = NoteCompiler(transport, credentials, model=config.gemini_model, metrics=metrics)

        if config.debug:
            print(f"[context] platform={config.platform} transport={transport.name} timeout={transport.timeout:g}s")

        return cls(
            config=config,
            blobs=blobs,
            credentials=credentials,
            transport=transport,
            recorder=recorder,
            transcriber=transcriber,
            compiler=compiler,
            store=NoteStore(config.notes_file),
            metrics=metrics,
        )

    def close(self) -> None:
        """Stop any recording, release its audio, close HTTP and metrics."""
        if self.recorder.is_recording:
            self.recorder.stop()
        self.recorder.cleanup()
        self.transport.close()
        if self.metrics:
            self.metrics.shutdown()

    def __enter__(self) -> "ScribeContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
