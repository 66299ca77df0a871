"""
Response normalization.

Whisper and Gemini answer in different shapes. Both end up as one
TranscriptionResult with text, confidence, language, duration and segments.
"""

import re
from typing import Any, Dict, List, Optional

from .types import Segment, TranscriptionResult


# Fixed per-provider confidence (Gemini never reports one)
WHISPER_CONFIDENCE = 0.9
GEMINI_CONFIDENCE = 0.85

DEFAULT_LANGUAGE = "en"

# Rough compressed-audio bitrate: ~2 KB per second
BYTES_PER_SECOND = 2000

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


def estimate_duration(size: int) -> float:
    """Duration in seconds from the audio byte length."""
    return max(size, 0) / BYTES_PER_SECOND


def split_sentences(text: str) -> List[str]:
    """Split on whitespace after ., ! or ?; empty pieces are dropped."""
    if not text:
        return []
    return [s.strip() for s in _SENTENCE_SPLIT.split(text.strip()) if s.strip()]


def synthesize_segments(text: str, duration: float, confidence: float) -> List[Segment]:
    """
    Evenly distribute duration across the sentences of text.

    The first segment starts at 0 and the last ends at exactly duration.
    No sentences means no segments.
    """
    sentences = split_sentences(text)
    if not sentences:
        return []

    step = duration / len(sentences)
    segments = []
    for i, sentence in enumerate(sentences):
        end = duration if i == len(sentences) - 1 else (i + 1) * step
        segments.append(Segment(
            index=i,
            text=sentence,
            start=i * step,
            end=end,
            confidence=confidence,
        ))
    return segments


def _provider_segments(raw: Any, confidence: float) -> Optional[List[Segment]]:
    """Map provider-reported segments, None when there are none usable."""
    if not isinstance(raw, list) or not raw:
        return None

    segments = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            continue
        try:
            segment = Segment(
                index=int(item.get("id", i)),
                text=str(item.get("text") or "").strip(),
                start=float(item.get("start", 0.0)),
                end=float(item.get("end", item.get("start", 0.0))),
                confidence=float(item.get("confidence", confidence)),
            )
        except (TypeError, ValueError):
            continue
        segments.append(segment)
    return segments or None


def _reported_duration(payload: Dict[str, Any]) -> Optional[float]:
    value = payload.get("duration")
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def normalize_whisper(payload: Dict[str, Any], size: int) -> TranscriptionResult:
    """Normalize a Whisper (or proxied Whisper) response."""
    text = payload.get("text") or ""
    if not isinstance(text, str):
        text = str(text)

    confidence = payload.get("confidence")
    confidence = float(confidence) if isinstance(confidence, (int, float)) else WHISPER_CONFIDENCE

    duration = _reported_duration(payload)
    if duration is None:
        duration = estimate_duration(size)

    segments = _provider_segments(payload.get("segments"), confidence)
    if segments is None:
        segments = synthesize_segments(text, duration, confidence)

    return TranscriptionResult(
        text=text,
        confidence=confidence,
        language=payload.get("language") or DEFAULT_LANGUAGE,
        duration=duration,
        segments=segments,
        provider="whisper",
    )


def gemini_text(payload: Dict[str, Any]) -> str:
    """Text of the first candidate, parts joined. Empty string if absent."""
    candidates = payload.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(str(p.get("text") or "") for p in parts if isinstance(p, dict))


def normalize_gemini(payload: Dict[str, Any], size: int) -> TranscriptionResult:
    """Normalize a generateContent response used as a transcription."""
    text = gemini_text(payload).strip()
    duration = estimate_duration(size)

    return TranscriptionResult(
        text=text,
        confidence=GEMINI_CONFIDENCE,
        language=DEFAULT_LANGUAGE,
        duration=duration,
        segments=synthesize_segments(text, duration, GEMINI_CONFIDENCE),
        provider="gemini",
    )
