"""
NoteScribe - clinical voice notes.

This package provides:
- Audio capture on native (WAV file) and web (in-memory blob) targets
- Transcription with Whisper first and Gemini as a fallback
- One normalized result shape with synthesized segments
- Structured medical note generation with heuristic field extraction
- A user-scoped note store

Main entry point: python -m notescribe
"""

__version__ = "1.0.0"
