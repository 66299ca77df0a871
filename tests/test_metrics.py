"""
Tests for the JSONL MetricsWriter and its event helpers.
"""

import json


class TestMetricsWriter:

    def test_events_written_as_jsonl(self, tmp_path):
        from notescribe.metrics import MetricsWriter, log_provider_attempt, log_note_compiled

        path = tmp_path / "metrics.jsonl"
        metrics = MetricsWriter(path)
        log_provider_attempt(metrics, "whisper", False, 12.5, "Whisper API error (500): boom")
        log_note_compiled(metrics, "Appendectomy", 2, 800.0)
        metrics.shutdown()

        entries = [json.loads(line) for line in path.read_text().splitlines()]
        assert [e["event"] for e in entries] == ["transcription_attempt", "note_compiled"]
        assert entries[0]["provider"] == "whisper"
        assert all("ts" in e for e in entries)

    def test_helpers_accept_no_writer(self):
        """Metrics are optional everywhere."""
        from notescribe.metrics import log_provider_attempt, log_transcription_failed

        log_provider_attempt(None, "gemini", True, 1.0)
        log_transcription_failed(None, "both failed")
