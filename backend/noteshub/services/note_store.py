"""
NotesHub Backend — Abstract Note Store Interface
=================================================

What:  Abstract base class defining the persistence contract for notes.
How:   SqlNoteStore (async SQLAlchemy) and MemoryNoteStore (in-process)
       implement it; NoteService only ever talks to this interface.
Who:   Selected once at startup by the storage registry (services/storage.py).

The in-memory implementation exists so the API keeps serving when the
database is unreachable; /api/db-status then reports "warning".
"""

import uuid
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple

from noteshub.models.note import Note
from noteshub.schemas.note import NoteFilter


class NoteStore(ABC):
    """
    Persistence contract for notes.

    Contract:
        - Lookups return None for missing notes (never raise NotFoundError);
          the service layer decides what "missing" means for the caller.
        - list_notes() returns notes newest first.
        - Implementation-specific failures are wrapped in DatabaseError.
    """

    #: Short name reported by /health ("database" or "memory")
    name: str = "abstract"

    @abstractmethod
    async def ping(self) -> None:
        """
        Verify the backing store is reachable.

        Raises:
            Any driver exception when it is not; the status service maps
            that to an "error" StatusReport.
        """
        ...

    @abstractmethod
    async def add(self, note: Note) -> Note:
        """Persist a new note and return it with id and uploaded_at set."""
        ...

    @abstractmethod
    async def get(self, note_id: uuid.UUID) -> Optional[Note]:
        ...

    @abstractmethod
    async def list_notes(self, filters: NoteFilter, limit: int) -> Tuple[List[Note], int]:
        """
        Return up to `limit` notes matching `filters` plus the total count.

        The cursor in `filters` restricts the page to notes uploaded strictly
        before it; the total count ignores the cursor.
        """
        ...

    @abstractmethod
    async def list_flagged(self) -> List[Note]:
        ...

    @abstractmethod
    async def update(self, note_id: uuid.UUID, **changes: Any) -> Optional[Note]:
        """Apply column changes; return the updated note or None if missing."""
        ...

    @abstractmethod
    async def delete(self, note_id: uuid.UUID) -> Optional[Note]:
        """Remove the note; return what was removed or None if missing."""
        ...
