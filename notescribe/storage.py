"""
User-scoped note storage in a single JSON file.

Every call names the acting user. Notes belonging to someone else are
never returned, changed or deleted.
"""

import json
import os
import threading
import uuid
from dataclasses import asdict, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from .errors import AccessDeniedError, NoteNotFoundError
from .types import Note, NotePage


PAGE_SIZE = 20

_NOTE_FIELDS = {f.name for f in fields(Note)}
_READ_ONLY_FIELDS = {"id", "user_id", "created_at"}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class NoteStore:
    """
    Usage:
        store = NoteStore(config.notes_file)
        note_id = store.save(user_id, note)
        page = store.list(user_id, page=0)
    """

    def __init__(self, path: Path, page_size: int = PAGE_SIZE):
        self.path = Path(path)
        self.page_size = page_size
        self._lock = threading.Lock()

    # File access (call with lock held)

    def _load(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}
        with open(self.path) as f:
            return json.load(f)

    def _write(self, notes: Dict[str, Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        with open(tmp_path, "w") as f:
            json.dump(notes, f, indent=2)
        os.replace(tmp_path, self.path)

    @staticmethod
    def _to_note(data: Dict[str, Any]) -> Note:
        return Note(**{k: v for k, v in data.items() if k in _NOTE_FIELDS})

    @staticmethod
    def _require_user(user_id: str) -> None:
        if not user_id:
            raise AccessDeniedError("User not authenticated")

    def _owned(self, notes: Dict[str, Dict[str, Any]], user_id: str, note_id: str) -> Dict[str, Any]:
        data = notes.get(note_id)
        if data is None:
            raise NoteNotFoundError(f"Note {note_id} not found")
        if data.get("user_id") != user_id:
            raise AccessDeniedError(f"Not authorized to access note {note_id}")
        return data

    # Gateway

    def save(self, user_id: str, note: Note) -> str:
        """Insert a note for user_id and return its new id."""
        self._require_user(user_id)
        now = _now()
        data = asdict(note)
        data.update(
            id=uuid.uuid4().hex,
            user_id=user_id,
            title=note.title or "Untitled Note",
            created_at=now,
            updated_at=now,
        )

        with self._lock:
            notes = self._load()
            notes[data["id"]] = data
            self._write(notes)

        print(f"[storage] Saved note {data['id']}")
        return data["id"]

    def update(self, user_id: str, note_id: str, changes: Dict[str, Any]) -> Note:
        self._require_user(user_id)
        unknown = set(changes) - _NOTE_FIELDS
        if unknown:
            raise ValueError(f"Unknown note fields: {sorted(unknown)}")

        with self._lock:
            notes = self._load()
            data = self._owned(notes, user_id, note_id)
            data.update({k: v for k, v in changes.items() if k not in _READ_ONLY_FIELDS})
            data["updated_at"] = _now()
            self._write(notes)
        return self._to_note(data)

    def get(self, user_id: str, note_id: str) -> Note:
        self._require_user(user_id)
        with self._lock:
            return self._to_note(self._owned(self._load(), user_id, note_id))

    def _user_notes(self, user_id: str) -> List[Note]:
        with self._lock:
            notes = self._load()
        owned = [self._to_note(n) for n in notes.values() if n.get("user_id") == user_id]
        return sorted(owned, key=lambda n: n.created_at, reverse=True)

    def list(self, user_id: str, page: int = 0) -> NotePage:
        """One page of the user's notes, newest first."""
        self._require_user(user_id)
        notes = self._user_notes(user_id)
        offset = max(page, 0) * self.page_size
        return NotePage(
            items=notes[offset:offset + self.page_size],
            has_more=offset + self.page_size < len(notes),
        )

    def search(self, user_id: str, keyword: str) -> List[Note]:
        """Case-insensitive match on title, content, transcription, procedure type and tags."""
        self._require_user(user_id)
        needle = keyword.strip().lower()
        if not needle:
            return []

        def matches(note: Note) -> bool:
            haystack = [note.title, note.content, note.transcription, note.procedure_type, *note.tags]
            return any(needle in (field or "").lower() for field in haystack)

        return [n for n in self._user_notes(user_id) if matches(n)]

    def delete(self, user_id: str, note_id: str) -> None:
        self._require_user(user_id)
        with self._lock:
            notes = self._load()
            self._owned(notes, user_id, note_id)
            del notes[note_id]
            self._write(notes)
        print(f"[storage] Deleted note {note_id}")
