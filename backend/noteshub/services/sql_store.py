"""
NotesHub Backend — SQL Note Store
==================================

What:  NoteStore backed by async SQLAlchemy (PostgreSQL in production,
       SQLite in tests).
How:   Each operation opens its own session from the session factory,
       commits on success and rolls back on error. Driver errors are logged
       with context and re-raised as DatabaseError with a generic message.

Query plan (default listing):
    SELECT ... WHERE department = :d AND subject = :s AND year = :y
               AND uploaded_at < :cursor
    ORDER BY uploaded_at DESC LIMIT :limit
    → idx_notes_department_subject_year / idx_notes_uploaded_at
"""

import logging
import uuid
from typing import Any, List, Optional, Tuple

from sqlalchemy import Select, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from noteshub.database import get_session_factory, ping_database
from noteshub.exceptions import DatabaseError
from noteshub.models.note import Note
from noteshub.schemas.note import NoteFilter
from noteshub.services.note_store import NoteStore

logger = logging.getLogger(__name__)


def _apply_filters(query: Select, filters: NoteFilter) -> Select:
    if filters.department:
        query = query.where(Note.department == filters.department)
    if filters.subject:
        query = query.where(Note.subject == filters.subject)
    if filters.year is not None:
        query = query.where(Note.year == filters.year)
    return query


class SqlNoteStore(NoteStore):
    """Database-backed note persistence."""

    name = "database"

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    async def ping(self) -> None:
        if self._session_factory is None:
            await ping_database()
            return
        async with self._session_factory() as session:
            await session.execute(select(1))

    async def add(self, note: Note) -> Note:
        try:
            async with self.session_factory() as session:
                session.add(note)
                await session.commit()
                await session.refresh(note)
                return note
        except Exception as e:
            logger.error("Database error storing note: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save the note. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def get(self, note_id: uuid.UUID) -> Optional[Note]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(select(Note).where(Note.id == note_id))
                return result.scalar_one_or_none()
        except Exception as e:
            logger.error("Database error fetching note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the note. Please try again.",
                context={"note_id": str(note_id)},
            )

    async def list_notes(self, filters: NoteFilter, limit: int) -> Tuple[List[Note], int]:
        try:
            async with self.session_factory() as session:
                query = _apply_filters(select(Note), filters)
                if filters.cursor is not None:
                    query = query.where(Note.uploaded_at < filters.cursor)
                query = query.order_by(desc(Note.uploaded_at)).limit(limit)
                result = await session.execute(query)
                notes = list(result.scalars().all())

                count_query = _apply_filters(select(func.count(Note.id)), filters)
                count_result = await session.execute(count_query)
                total = count_result.scalar() or 0
                return notes, total
        except Exception as e:
            logger.error("Database error listing notes: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve notes. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def list_flagged(self) -> List[Note]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Note)
                    .where(Note.is_flagged.is_(True))
                    .order_by(desc(Note.uploaded_at))
                )
                return list(result.scalars().all())
        except Exception as e:
            logger.error("Database error listing flagged notes: %s", str(e))
            raise DatabaseError(
                message="Could not retrieve flagged notes. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def update(self, note_id: uuid.UUID, **changes: Any) -> Optional[Note]:
        try:
            async with self.session_factory() as session:
                note = await session.get(Note, note_id)
                if note is None:
                    return None
                for column, value in changes.items():
                    setattr(note, column, value)
                await session.commit()
                return note
        except Exception as e:
            logger.error("Database error updating note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not update the note. Please try again.",
                context={"note_id": str(note_id), "columns": sorted(changes)},
            )

    async def delete(self, note_id: uuid.UUID) -> Optional[Note]:
        try:
            async with self.session_factory() as session:
                note = await session.get(Note, note_id)
                if note is None:
                    return None
                await session.delete(note)
                await session.commit()
                return note
        except Exception as e:
            logger.error("Database error deleting note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not delete the note. Please try again.",
                context={"note_id": str(note_id)},
            )
