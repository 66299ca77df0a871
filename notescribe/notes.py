"""
Note compilation: transcript in, structured medical note out.

The transcript is wrapped in a fixed instruction template and sent to the
generative provider. procedure_type and tags are pulled out of the returned
markdown by the extractors in extract.py.
"""

import time
from typing import Iterable, Optional

from .credentials import CredentialResolver
from .errors import GenerationError, ProviderError, KIND_CREDENTIALS, KIND_RATE_LIMIT, KIND_GENERIC
from .extract import (
    PROCEDURE_EXTRACTORS, TAG_EXTRACTORS, ProcedureExtractor, TagExtractor,
    extract_procedure_type, extract_tags,
)
from .metrics import MetricsWriter, log_note_compiled
from .normalize import gemini_text
from .transport import Transport
from .types import CompiledNote


NOTE_TEMPLATE = """You are a medical assistant specialized in creating structured medical notes from transcriptions.
Based on the following transcription, create detailed and well-formatted medical notes.

Structure the notes with these sections (only include sections that are relevant):
- PATIENT: Demographics and identifying information
- PROCEDURE/ASSESSMENT: Type of procedure or assessment being performed
- HISTORY: Relevant medical history and presenting symptoms
- PHYSICAL EXAMINATION: Objective findings
- PROCEDURE DETAILS: For surgical/procedural notes
- ASSESSMENT: Clinical impression and diagnoses
- PLAN: Treatment recommendations, medications, follow-up

Format the output in clean markdown with clear headings.
Make sure to maintain all medically relevant information.
Use appropriate medical terminology.
Be concise but thorough.

Here is the transcription:
{transcript}"""

GENERATION_CONFIG = {
    "temperature": 0.2,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 1000,
}

SAFETY_SETTINGS = [
    {"category": category, "threshold": "BLOCK_ONLY_HIGH"}
    for category in (
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_HARASSMENT",
    )
]


def build_note_request(transcript: str) -> dict:
    return {
        "contents": [{"parts": [{"text": NOTE_TEMPLATE.format(transcript=transcript)}]}],
        "generationConfig": dict(GENERATION_CONFIG),
        "safetySettings": [dict(s) for s in SAFETY_SETTINGS],
    }


def classify_generation_error(error: ProviderError) -> GenerationError:
    """403 is a key problem, 429 a rate limit, anything else generic."""
    if error.status == 403:
        return GenerationError(f"API key error: {error}", status=403, kind=KIND_CREDENTIALS)
    if error.status == 429 or error.rate_limited:
        return GenerationError(
            "Rate limit exceeded. Please try again later.", status=error.status, kind=KIND_RATE_LIMIT,
        )
    return GenerationError(str(error), status=error.status, kind=KIND_GENERIC)


class NoteCompiler:
    """
    Usage:
        compiler = NoteCompiler(transport, resolver)
        note = compiler.compile(result.text)
    """

    def __init__(
        self,
        transport: Transport,
        resolver: CredentialResolver,
        model: str = "gemini-2.0-flash",
        procedure_extractors: Iterable[ProcedureExtractor] = PROCEDURE_EXTRACTORS,
        tag_extractors: Iterable[TagExtractor] = TAG_EXTRACTORS,
        metrics: Optional[MetricsWriter] = None,
    ):
        self.transport = transport
        self.resolver = resolver
        self.model = model
        self.procedure_extractors = list(procedure_extractors)
        self.tag_extractors = list(tag_extractors)
        self.metrics = metrics

    def compile(self, transcript: str) -> CompiledNote:
        """
        Generate structured notes for a transcript.

        Raises:
            ConfigurationError: no Gemini key
            GenerationError: the provider call failed (kind tells why)
        """
        credentials = self.resolver.gemini()

        start = time.perf_counter()
        try:
            payload = self.transport.post_generate(
                build_note_request(transcript), credentials, model=self.model,
            )
        except ProviderError as e:
            error = classify_generation_error(e)
            print(f"[notes] Generation failed ({error.kind}): {e}")
            raise error from e

        content = gemini_text(payload)
        procedure_type = extract_procedure_type(content, self.procedure_extractors)
        tags = extract_tags(content, self.tag_extractors)
        latency_ms = (time.perf_counter() - start) * 1000

        print(f"[notes] Compiled note: {procedure_type!r}, {len(tags)} tags in {latency_ms / 1000:.2f}s")
        log_note_compiled(self.metrics, procedure_type, len(tags), latency_ms)

        return CompiledNote(
            title=procedure_type,
            content=content,
            procedure_type=procedure_type,
            tags=tags,
        )
