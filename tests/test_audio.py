"""
Tests for NativeRecorder and BrowserRecorder.

sounddevice is never opened: NativeRecorder gets a fake stream factory and
frames are pushed through the captured callback.
"""

import numpy as np
import pytest


class FakeStream:
    """Stands in for sounddevice.InputStream."""

    instances = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.callback = kwargs["callback"]
        self.started = False
        self.closed = False
        FakeStream.instances.append(self)

    def start(self):
        self.started = True

    def stop(self):
        self.started = False

    def close(self):
        self.closed = True


def denied_stream(**kwargs):
    raise PermissionError("microphone access denied by the OS")


@pytest.fixture
def recorder(tmp_path):
    from notescribe.audio import NativeRecorder

    FakeStream.instances = []
    return NativeRecorder(tmp_path / "recordings", stream_factory=FakeStream)


def recordings(tmp_path):
    return sorted((tmp_path / "recordings").glob("*.wav"))


class TestNativeRecorder:

    def test_stream_profile(self, recorder):
        """44.1 kHz mono capture."""
        recorder.start()
        stream = FakeStream.instances[-1]

        assert stream.started
        assert stream.kwargs["samplerate"] == 44100
        assert stream.kwargs["channels"] == 1
        recorder.stop()
        recorder.cleanup()

    def test_record_writes_wav(self, recorder, tmp_path):
        import soundfile as sf
        from notescribe.types import FILE

        recorder.start()
        assert recorder.is_recording

        block = np.full((1024, 1), 0.1, dtype=np.float32)
        for _ in range(4):
            FakeStream.instances[-1].callback(block, 1024, None, None)

        handle = recorder.stop()

        assert not recorder.is_recording
        assert handle.kind == FILE
        assert handle.mime_type == "audio/wav"
        assert handle.size > 0
        assert FakeStream.instances[-1].closed
        info = sf.info(handle.uri)
        assert info.samplerate == 44100
        assert info.frames == 4096

    def test_cleanup_removes_file_once(self, recorder, tmp_path):
        recorder.start()
        handle = recorder.stop()
        assert recordings(tmp_path)

        recorder.cleanup()
        recorder.cleanup()

        assert recordings(tmp_path) == []
        assert recorder.last_handle == handle

    def test_stop_when_not_recording(self, recorder):
        assert recorder.stop() is None

    def test_cleanup_before_any_recording(self, recorder):
        recorder.cleanup()

    def test_permission_denied(self, tmp_path):
        from notescribe.audio import NativeRecorder
        from notescribe.errors import MicrophonePermissionError

        recorder = NativeRecorder(tmp_path / "recordings", stream_factory=denied_stream)

        with pytest.raises(MicrophonePermissionError):
            recorder.start()

        assert not recorder.is_recording
        assert recordings(tmp_path) == []

    def test_sink_failure_leaves_no_file(self, recorder, tmp_path):
        from unittest.mock import patch

        with patch("notescribe.audio.sf.SoundFile", side_effect=RuntimeError("unsupported format")):
            with pytest.raises(RuntimeError):
                recorder.start()

        assert not recorder.is_recording
        assert recordings(tmp_path) == []
        assert FakeStream.instances == []

    def test_restart_releases_previous(self, recorder, tmp_path):
        recorder.start()
        first = recordings(tmp_path)

        recorder.start()

        assert recorder.is_recording
        current = recordings(tmp_path)
        assert len(current) == 1
        assert current != first
        recorder.stop()
        recorder.cleanup()

    def test_start_twice_raises_when_restart_disabled(self, tmp_path):
        from notescribe.audio import NativeRecorder
        from notescribe.errors import AlreadyRecordingError

        recorder = NativeRecorder(tmp_path / "recordings", stream_factory=FakeStream, restart_on_start=False)
        recorder.start()

        with pytest.raises(AlreadyRecordingError):
            recorder.start()
        assert recorder.is_recording
        recorder.stop()
        recorder.cleanup()

    def test_context_manager_releases(self, recorder, tmp_path):
        with recorder:
            recorder.start()
        assert not recorder.is_recording
        assert recordings(tmp_path) == []


class TestBrowserRecorder:

    def test_chunks_become_blob(self):
        from notescribe.audio import BrowserRecorder
        from notescribe.blobs import BlobStore
        from notescribe.types import BLOB

        blobs = BlobStore()
        recorder = BrowserRecorder(blobs)
        recorder.start()

        assert recorder.push_chunk(b"abc")
        assert not recorder.push_chunk(b"")
        assert recorder.push_chunk(b"def")
        handle = recorder.stop()

        assert handle.kind == BLOB
        assert handle.uri.startswith("blob:")
        assert handle.mime_type == "audio/webm"
        assert handle.size == 6
        assert blobs.read(handle.uri) == b"abcdef"

    def test_chunks_outside_session_dropped(self):
        from notescribe.audio import BrowserRecorder
        from notescribe.blobs import BlobStore

        recorder = BrowserRecorder(BlobStore())
        assert not recorder.push_chunk(b"early")

        recorder.start()
        handle = recorder.stop()
        assert not recorder.push_chunk(b"late")
        assert handle.size == 0

    def test_cleanup_revokes_blob(self):
        from notescribe.audio import BrowserRecorder
        from notescribe.blobs import BlobStore

        blobs = BlobStore()
        recorder = BrowserRecorder(blobs)
        recorder.start()
        recorder.push_chunk(b"data")
        handle = recorder.stop()

        recorder.cleanup()
        recorder.cleanup()

        assert not blobs.exists(handle.uri)
        assert len(blobs) == 0

    def test_permission_denied(self):
        from notescribe.audio import BrowserRecorder
        from notescribe.blobs import BlobStore
        from notescribe.errors import MicrophonePermissionError

        recorder = BrowserRecorder(BlobStore(), request_permission=lambda: False)

        with pytest.raises(MicrophonePermissionError):
            recorder.start()
        assert not recorder.is_recording
