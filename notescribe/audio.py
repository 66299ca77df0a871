"""
Audio capture for both targets.

NativeRecorder streams microphone frames from sounddevice straight into a
WAV file. BrowserRecorder collects chunks pushed by the web client and
only turns them into a blob when recording stops.

Both share one state machine (STOPPED -> RECORDING -> STOPPED) and a
cleanup() that releases the latest handle exactly once.
"""

import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, List, Optional

import numpy as np
import soundfile as sf

from .blobs import BlobStore
from .errors import AlreadyRecordingError, MicrophonePermissionError
from .types import AudioHandle, BLOB


# Native capture profile
SAMPLE_RATE = 44100
CHANNELS = 1
FILE_FORMAT = "WAV"
SUBTYPE = "PCM_16"
BLOCKSIZE = 1024

WEB_MIME_TYPE = "audio/webm"


class Recorder(ABC):
    """
    One recording session at a time.

    Usage:
        recorder.start()
        # ... clinician speaks ...
        handle = recorder.stop()
        try:
            transcriber.transcribe(handle)
        finally:
            recorder.cleanup()

    start() while recording stops the running session first (UI double-taps)
    unless restart_on_start is False, in which case it raises.
    """

    def __init__(self, restart_on_start: bool = True):
        self.restart_on_start = restart_on_start
        self.is_recording: bool = False
        self.last_handle: Optional[AudioHandle] = None
        self._released: bool = True
        self._lock = threading.Lock()

    @abstractmethod
    def _open(self) -> None:
        """Acquire the microphone and the sink. Raises MicrophonePermissionError."""

    @abstractmethod
    def _finalize(self) -> AudioHandle:
        """Close the sink and return a handle to what was captured."""

    @abstractmethod
    def _release(self, handle: AudioHandle) -> None:
        """Free the handle's underlying resource."""

    def start(self) -> None:
        if self.is_recording:
            if not self.restart_on_start:
                raise AlreadyRecordingError("A recording is already in progress; stop it first")
            print("[recorder] Stopping previous recording before starting a new one")
            self.stop()
            # The caller never saw that handle, nothing else will release it
            self.cleanup()

        self._open()
        with self._lock:
            self.is_recording = True
        print(f"[recorder] Recording started ({type(self).__name__})")

    def stop(self) -> Optional[AudioHandle]:
        """Finish the session. Returns None when nothing is recording."""
        with self._lock:
            if not self.is_recording:
                print("[recorder] No active recording to stop")
                return None
            self.is_recording = False

        handle = self._finalize()
        with self._lock:
            self.last_handle = handle
            self._released = False
        print(f"[recorder] Recording stopped and saved to {handle.uri} ({handle.size} bytes)")
        return handle

    def cleanup(self) -> None:
        """Release the latest handle. Safe to call any number of times."""
        with self._lock:
            if self._released or self.last_handle is None:
                return
            handle = self.last_handle
            self._released = True

        try:
            self._release(handle)
            print(f"[recorder] Released {handle.uri}")
        except Exception as e:  # noqa: BLE001 - cleanup failures are logged only
            print(f"[recorder] Failed to clean up {handle.uri}: {e}")

    def __enter__(self) -> "Recorder":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.is_recording:
            self.stop()
        self.cleanup()


class NativeRecorder(Recorder):
    """
    Microphone capture to a local WAV file (44.1 kHz, mono, PCM_16).

    stream_factory replaces sounddevice.InputStream in tests; it receives the
    same keyword arguments and must return an object with start/stop/close.
    """

    def __init__(
        self,
        recordings_dir: Path,
        stream_factory: Optional[Callable[..., object]] = None,
        restart_on_start: bool = True,
    ):
        super().__init__(restart_on_start)
        self.recordings_dir = Path(recordings_dir)
        self._stream_factory = stream_factory
        self._stream = None
        self._sink: Optional[sf.SoundFile] = None
        self._path: Optional[str] = None

    def _open(self) -> None:
        self.recordings_dir.mkdir(parents=True, exist_ok=True)
        fd, path = tempfile.mkstemp(prefix="recording_", suffix=".wav", dir=self.recordings_dir)
        os.close(fd)

        sink = None
        try:
            sink = sf.SoundFile(
                path, mode="w", samplerate=SAMPLE_RATE, channels=CHANNELS,
                format=FILE_FORMAT, subtype=SUBTYPE,
            )
            with self._lock:
                self._sink = sink
                self._path = path
            self._stream = self._open_stream()
        except Exception:
            with self._lock:
                self._sink = None
                self._path = None
            if sink is not None:
                sink.close()
            os.remove(path)
            raise

    def _open_stream(self):
        kwargs = dict(
            samplerate=SAMPLE_RATE,
            channels=CHANNELS,
            dtype="float32",
            blocksize=BLOCKSIZE,
            callback=self._audio_callback,
        )

        if self._stream_factory is not None:
            try:
                stream = self._stream_factory(**kwargs)
                stream.start()
            except PermissionError as e:
                raise MicrophonePermissionError(f"Permission to access microphone was denied: {e}")
            return stream

        import sounddevice as sd

        try:
            stream = sd.InputStream(**kwargs)
            stream.start()
        except sd.PortAudioError as e:
            raise MicrophonePermissionError(f"Microphone unavailable: {e}")
        return stream

    def _audio_callback(self, indata: np.ndarray, frames: int, time_info, status) -> None:
        """Called by sounddevice for each block; appends it to the sink."""
        if status:
            print(f"[recorder] Audio callback status: {status}")

        with self._lock:
            if self._sink is not None:
                self._sink.write(indata.copy())

    def _finalize(self) -> AudioHandle:
        # Stop the stream outside the lock, the callback takes it too
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except Exception as e:  # noqa: BLE001 - the file is still usable
                print(f"[recorder] Error closing audio stream: {e}")

        with self._lock:
            sink, self._sink = self._sink, None
            path, self._path = self._path, None
        if sink is not None:
            sink.close()

        return AudioHandle.from_path(path)

    def _release(self, handle: AudioHandle) -> None:
        try:
            os.remove(handle.uri)
        except FileNotFoundError:
            pass


class BrowserRecorder(Recorder):
    """
    Web capture: the client streams encoded chunks in with push_chunk().

    request_permission stands in for the browser's getUserMedia prompt and
    must return True when the user allowed the microphone.
    """

    def __init__(
        self,
        blobs: BlobStore,
        request_permission: Optional[Callable[[], bool]] = None,
        mime_type: str = WEB_MIME_TYPE,
        restart_on_start: bool = True,
    ):
        super().__init__(restart_on_start)
        self.blobs = blobs
        self.mime_type = mime_type
        self._request_permission = request_permission or (lambda: True)
        self._chunks: List[bytes] = []

    def _open(self) -> None:
        if not self._request_permission():
            raise MicrophonePermissionError("Permission to access microphone was denied")
        with self._lock:
            self._chunks = []

    def push_chunk(self, data: bytes) -> bool:
        """Add one chunk. Empty chunks and chunks outside a session are dropped."""
        with self._lock:
            if not self.is_recording or not data:
                return False
            self._chunks.append(bytes(data))
            return True

    def _finalize(self) -> AudioHandle:
        with self._lock:
            data = b"".join(self._chunks)
            self._chunks = []
        uri = self.blobs.create(data, self.mime_type)
        return AudioHandle(uri=uri, kind=BLOB, mime_type=self.mime_type, size=len(data))

    def _release(self, handle: AudioHandle) -> None:
        self.blobs.revoke(handle.uri)
