"""
Tests for NoteCompiler request building and error classification.
"""

from unittest.mock import Mock

import pytest


def make_resolver(key="gem-key"):
    from notescribe.credentials import CredentialResolver, MappingSource

    values = {"GEMINI_API_URL": "https://gen.example.com/v1beta"}
    if key:
        values["GEMINI_API_KEY"] = key
    return CredentialResolver("native", bundled=MappingSource("test", values))


def make_compiler(payload=None, error=None, key="gem-key"):
    from notescribe.notes import NoteCompiler
    from notescribe.transport import Transport

    transport = Mock(spec=Transport)
    if error is not None:
        transport.post_generate.side_effect = error
    else:
        transport.post_generate.return_value = payload
    return NoteCompiler(transport, make_resolver(key)), transport


def gemini_payload(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class TestCompile:

    def test_compiled_note_fields(self):
        markdown = "# Note\n**Diagnosis:** Acute appendicitis.\nMedication: Ceftriaxone"
        compiler, transport = make_compiler(gemini_payload(markdown))

        note = compiler.compile("Patient with right lower quadrant pain.")

        assert note.content == markdown
        assert note.procedure_type == "Acute appendicitis"
        assert note.title == note.procedure_type
        assert note.tags == ["Acute appendicitis", "Ceftriaxone"]

    def test_request_body(self):
        compiler, transport = make_compiler(gemini_payload("ok"))

        compiler.compile("The transcript text")

        body, creds = transport.post_generate.call_args[0][:2]
        prompt = body["contents"][0]["parts"][0]["text"]
        assert prompt.endswith("Here is the transcription:\nThe transcript text")
        assert body["generationConfig"]["temperature"] == 0.2
        assert body["generationConfig"]["maxOutputTokens"] == 1000
        assert all(s["threshold"] == "BLOCK_ONLY_HIGH" for s in body["safetySettings"])
        assert creds.api_key == "gem-key"
        assert transport.post_generate.call_args[1]["model"] == "gemini-2.0-flash"

    def test_missing_key(self):
        from notescribe.errors import ConfigurationError

        compiler, transport = make_compiler(gemini_payload("ok"), key=None)

        with pytest.raises(ConfigurationError):
            compiler.compile("text")
        transport.post_generate.assert_not_called()


class TestErrors:

    def _compile_error(self, status, message="boom", rate_limited=False):
        from notescribe.errors import GenerationError, ProviderError

        error = ProviderError("gemini", message, status=status, rate_limited=rate_limited)
        compiler, _ = make_compiler(error=error)
        with pytest.raises(GenerationError) as exc_info:
            compiler.compile("text")
        return exc_info.value

    def test_403_is_credentials(self):
        from notescribe.errors import KIND_CREDENTIALS

        err = self._compile_error(403, "Gemini API error (403): forbidden")
        assert err.kind == KIND_CREDENTIALS
        assert "API key error" in str(err)

    def test_429_is_rate_limit(self):
        from notescribe.errors import KIND_RATE_LIMIT

        err = self._compile_error(429)
        assert err.kind == KIND_RATE_LIMIT
        assert "Rate limit exceeded" in str(err)

    def test_other_status_is_generic(self):
        from notescribe.errors import KIND_GENERIC

        err = self._compile_error(500, "Gemini API error (500): internal")
        assert err.kind == KIND_GENERIC
        assert err.status == 500
        assert "internal" in str(err)

    def test_network_error_is_generic(self):
        from notescribe.errors import KIND_GENERIC

        err = self._compile_error(None, "Gemini request timed out after 30s")
        assert err.kind == KIND_GENERIC
        assert err.status is None
