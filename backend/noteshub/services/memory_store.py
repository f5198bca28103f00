"""
NotesHub Backend — In-Memory Note Store (Fallback Storage)
===========================================================

What:  NoteStore that keeps notes in a dict inside the server process.
When:  Selected at startup when the database is unreachable and
       ALLOW_FALLBACK_STORAGE is true; also used by the test-suite.
Caveat: Data does not survive a restart and is not shared between workers.
        /api/db-status reports "warning" while this store is active.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from noteshub.models.note import Note
from noteshub.schemas.note import NoteFilter
from noteshub.services.note_store import NoteStore


def _matches(note: Note, filters: NoteFilter) -> bool:
    if filters.department and note.department != filters.department:
        return False
    if filters.subject and note.subject != filters.subject:
        return False
    if filters.year is not None and note.year != filters.year:
        return False
    return True


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class MemoryNoteStore(NoteStore):
    """Dict-backed note persistence. Column defaults are applied on add()."""

    name = "memory"

    def __init__(self) -> None:
        self._notes: Dict[uuid.UUID, Note] = {}

    async def ping(self) -> None:
        return None

    async def add(self, note: Note) -> Note:
        if note.id is None:
            note.id = uuid.uuid4()
        if note.uploaded_at is None:
            note.uploaded_at = datetime.now(timezone.utc)
        if note.is_flagged is None:
            note.is_flagged = False
        if note.is_approved is None:
            note.is_approved = True
        self._notes[note.id] = note
        return note

    async def get(self, note_id: uuid.UUID) -> Optional[Note]:
        return self._notes.get(note_id)

    def _newest_first(self, notes: List[Note]) -> List[Note]:
        return sorted(notes, key=lambda n: _as_aware(n.uploaded_at), reverse=True)

    async def list_notes(self, filters: NoteFilter, limit: int) -> Tuple[List[Note], int]:
        matching = [n for n in self._notes.values() if _matches(n, filters)]
        total = len(matching)
        if filters.cursor is not None:
            cursor = _as_aware(filters.cursor)
            matching = [n for n in matching if _as_aware(n.uploaded_at) < cursor]
        return self._newest_first(matching)[:limit], total

    async def list_flagged(self) -> List[Note]:
        return self._newest_first([n for n in self._notes.values() if n.is_flagged])

    async def update(self, note_id: uuid.UUID, **changes: Any) -> Optional[Note]:
        note = self._notes.get(note_id)
        if note is None:
            return None
        for column, value in changes.items():
            setattr(note, column, value)
        return note

    async def delete(self, note_id: uuid.UUID) -> Optional[Note]:
        return self._notes.pop(note_id, None)

    def __len__(self) -> int:
        return len(self._notes)
