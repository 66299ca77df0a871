"""
JSONL metrics for provider attempts and note compilation.

Usage:
    metrics = MetricsWriter(config.metrics_file)
    log_provider_attempt(metrics, "whisper", succeeded=False, error="...")
"""

import json
import threading
import time
from pathlib import Path
from queue import Queue, Empty
from typing import Any, Optional


class MetricsWriter:
    """
    Appends one JSON object per event to a file.
    Callers only enqueue; a daemon thread does the writing.
    """

    def __init__(self, metrics_file: Path):
        self.metrics_file = Path(metrics_file)
        self._queue: Queue = Queue()
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def log(self, event: str, **fields: Any) -> None:
        """Queue an event. Never blocks, never raises."""
        self._queue.put({"ts": time.time(), "event": event, **fields})

    def _drain(self) -> list:
        entries = []
        while True:
            try:
                entries.append(self._queue.get_nowait())
            except Empty:
                return entries

    def _run(self) -> None:
        while not self._stopped.is_set():
            try:
                first = self._queue.get(timeout=0.5)
            except Empty:
                continue
            self._write([first] + self._drain())

    def _write(self, entries: list) -> None:
        if not entries:
            return
        try:
            self.metrics_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.metrics_file, "a") as f:
                for entry in entries:
                    f.write(json.dumps(entry, default=str) + "\n")
        except OSError as e:
            print(f"[metrics] Failed to write {len(entries)} entries: {e}")

    def flush(self) -> None:
        """Write whatever is queued right now."""
        self._write(self._drain())

    def shutdown(self) -> None:
        self._stopped.set()
        self._thread.join(timeout=2.0)
        self.flush()


def log_provider_attempt(
    metrics: Optional[MetricsWriter],
    provider: str,
    succeeded: bool,
    latency_ms: float,
    error: Optional[str] = None,
) -> None:
    if metrics:
        metrics.log(
            "transcription_attempt",
            provider=provider,
            succeeded=succeeded,
            latency_ms=round(latency_ms, 1),
            error=error,
        )


def log_transcription_complete(
    metrics: Optional[MetricsWriter],
    provider: str,
    chars: int,
    duration_s: float,
    fallback_used: bool,
) -> None:
    if metrics:
        metrics.log(
            "transcription_complete",
            provider=provider,
            chars=chars,
            duration_s=duration_s,
            fallback_used=fallback_used,
        )


def log_transcription_failed(metrics: Optional[MetricsWriter], error: str) -> None:
    if metrics:
        metrics.log("transcription_failed", error=error)


def log_note_compiled(
    metrics: Optional[MetricsWriter],
    procedure_type: str,
    tag_count: int,
    latency_ms: float,
) -> None:
    if metrics:
        metrics.log(
            "note_compiled",
            procedure_type=procedure_type,
            tag_count=tag_count,
            latency_ms=round(latency_ms, 1),
        )
