"""
End-to-end flow: recorder -> transcriber -> note compiler -> note store.
"""

from typing import Optional

from .audio import Recorder
from .errors import InvalidInputError
from .notes import NoteCompiler
from .storage import NoteStore
from .transcribe import Transcriber
from .types import AudioHandle, Note, TranscriptionResult


class NotePipeline:
    """
    Usage:
        pipeline = NotePipeline(ctx.recorder, ctx.transcriber, ctx.compiler, ctx.store)
        pipeline.start()
        ...
        note = pipeline.finish(user_id)
    """

    def __init__(
        self,
        recorder: Recorder,
        transcriber: Transcriber,
        compiler: NoteCompiler,
        store: Optional[NoteStore] = None,
    ):
        self.recorder = recorder
        self.transcriber = transcriber
        self.compiler = compiler
        self.store = store

    def start(self) -> None:
        self.recorder.start()

    def stop_and_transcribe(self) -> TranscriptionResult:
        """Stop recording and transcribe. The recording is released on every path."""
        try:
            handle = self.recorder.stop()
            if handle is None:
                raise InvalidInputError("No recording in progress")
            return self.transcriber.transcribe(handle)
        finally:
            self.recorder.cleanup()

    def compile(self, result: TranscriptionResult) -> Note:
        compiled = self.compiler.compile(result.text)
        return Note(
            title=compiled.title,
            content=compiled.content,
            transcription=result.text,
            procedure_type=compiled.procedure_type,
            tags=compiled.tags,
        )

    def finish(self, user_id: str) -> Note:
        """Stop, transcribe, compile and (when a store is set) save."""
        note = self.compile(self.stop_and_transcribe())
        if self.store is not None:
            note.id = self.store.save(user_id, note)
            note.user_id = user_id
        return note

    def transcribe_file(self, handle: AudioHandle) -> TranscriptionResult:
        """Transcribe existing audio. The caller keeps ownership of it."""
        return self.transcriber.transcribe(handle)
