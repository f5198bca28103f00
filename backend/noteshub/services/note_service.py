"""
NotesHub Backend — Note Service (Business Logic)
=================================================

What:  Upload, browse, filter, flag and review workflows for shared notes.
How:   Composes FileService with whichever NoteStore the storage registry
       selected. Routes pass the store in on every call, so the service
       holds no per-request state.

Upload flow (POST /api/notes):
    ┌──────────┐    ┌─────────────┐    ┌──────────────┐
    │  Upload  │───▶│  Validate   │───▶│  NoteStore   │
    │  (Route) │    │  & Store    │    │  .add()      │
    └──────────┘    │  (FileServ) │    └──────────────┘
                    └─────────────┘
    If persisting fails the stored file is removed again.

Moderation flow:
    flag(reason)     → is_flagged=True, flag_reason=<escaped reason>
    review(approved) → approved: unflag, stamp reviewed_at
                       rejected: delete the note and its file
"""

import html
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple
from uuid import UUID

from noteshub.exceptions import DatabaseError, NotesHubError, NotFoundError, ValidationError
from noteshub.models.note import Note
from noteshub.schemas.note import (
    NoteActionResponse,
    NoteCreate,
    NoteFilter,
    NoteListResponse,
    NoteResponse,
)
from noteshub.services.file_service import file_service
from noteshub.services.note_store import NoteStore

logger = logging.getLogger(__name__)


def sanitize_user_text(value: str) -> str:
    """Trim and HTML-escape free text before it is stored and echoed back."""
    return html.escape(value.strip(), quote=True)


class NoteService:
    """
    Business logic layer for note operations.

    Error Handling Strategy:
        Missing notes become NotFoundError; rule violations become
        ValidationError; store failures arrive as DatabaseError. Anything
        unexpected during upload is wrapped in DatabaseError after the
        stored file has been cleaned up.
    """

    async def upload_note(
        self,
        store: NoteStore,
        metadata: NoteCreate,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> NoteActionResponse:
        """
        Validate and store the file, then persist the note record.

        Raises:
            ValidationError: Invalid file type or size
            FileStorageError: Disk write failed
            DatabaseError: Persisting the note failed
        """
        absolute_path: Optional[str] = None

        try:
            absolute_path, relative_path = await file_service.validate_and_store(
                filename=filename,
                content=content,
                content_length=content_length,
            )

            note = Note(
                usn=metadata.usn.strip(),
                title=metadata.title.strip(),
                department=metadata.department.strip(),
                year=metadata.year,
                subject=metadata.subject.strip(),
                filename=relative_path,
                original_filename=Path(filename).name,
                is_flagged=False,
                is_approved=True,
            )
            note = await store.add(note)

            logger.info(
                "Note uploaded: id=%s usn=%s file=%s size=%d bytes",
                note.id,
                note.usn,
                note.original_filename,
                len(content),
            )
            return NoteActionResponse(
                message="Note uploaded successfully",
                note=NoteResponse.from_note(note),
            )

        except Exception as e:
            if absolute_path:
                await file_service.cleanup_file(absolute_path)
            if isinstance(e, NotesHubError):
                raise
            logger.error("Unexpected error in upload_note: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="An error occurred while saving your note. Please try again.",
                context={"original_error": type(e).__name__},
            )

    async def _require(self, store: NoteStore, note_id: UUID) -> Note:
        note = await store.get(note_id)
        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        return note

    async def get_note(self, store: NoteStore, note_id: UUID) -> NoteResponse:
        """Raises NotFoundError when the note does not exist."""
        return NoteResponse.from_note(await self._require(store, note_id))

    async def list_notes(self, store: NoteStore, filters: NoteFilter) -> NoteListResponse:
        """
        Return one page of notes matching the filters, newest first.

        One extra row is fetched to decide has_more without a second query.
        """
        notes, total_count = await store.list_notes(filters, filters.limit + 1)

        has_more = len(notes) > filters.limit
        if has_more:
            notes = notes[: filters.limit]

        next_cursor = None
        if has_more and notes:
            next_cursor = notes[-1].uploaded_at.isoformat()

        return NoteListResponse(
            notes=[NoteResponse.from_note(note) for note in notes],
            total_count=total_count,
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def list_flagged(self, store: NoteStore) -> List[NoteResponse]:
        return [NoteResponse.from_note(note) for note in await store.list_flagged()]

    async def flag_note(self, store: NoteStore, note_id: UUID, reason: str) -> NoteActionResponse:
        """
        Mark a note for moderator review.

        Raises:
            ValidationError: blank reason
            NotFoundError: note does not exist
        """
        if not reason or not reason.strip():
            raise ValidationError(
                message="Please provide a reason for flagging this content",
                field="reason",
            )
        clean_reason = sanitize_user_text(reason)

        await self._require(store, note_id)
        note = await store.update(note_id, is_flagged=True, flag_reason=clean_reason)
        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))

        logger.warning("Note flagged: id=%s reason=%s", note_id, clean_reason)
        return NoteActionResponse(
            message="Note has been flagged for review",
            note=NoteResponse.from_note(note),
        )

    async def review_note(
        self, store: NoteStore, note_id: UUID, approved: bool
    ) -> NoteActionResponse:
        """
        Resolve a flag. Approval clears it; rejection removes the note.

        Raises:
            NotFoundError: note does not exist
            ValidationError: note is not flagged
        """
        note = await self._require(store, note_id)
        if not note.is_flagged:
            raise ValidationError(
                message="This note is not flagged for review",
                context={"note_id": str(note_id)},
            )

        logger.warning(
            "Note review: id=%s decision=%s", note_id, "approved" if approved else "rejected"
        )

        if approved:
            updated = await store.update(
                note_id,
                is_flagged=False,
                flag_reason=None,
                is_approved=True,
                reviewed_at=datetime.now(timezone.utc),
            )
            if updated is None:
                raise NotFoundError(resource="note", resource_id=str(note_id))
            return NoteActionResponse(
                message="Note has been approved and is now available",
                note=NoteResponse.from_note(updated),
            )

        removed = await store.delete(note_id)
        if removed is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        removed.is_approved = False
        await file_service.cleanup_file(str(file_service.storage_root / removed.filename))
        return NoteActionResponse(
            message="Note has been rejected and removed from the system",
            note=NoteResponse.from_note(removed),
        )

    async def get_file(self, store: NoteStore, note_id: UUID) -> Tuple[Path, str]:
        """
        Locate the stored file for a note.

        Returns:
            (absolute_path, original_filename)
        """
        note = await self._require(store, note_id)
        return file_service.resolve_path(note.filename), note.original_filename


# ── Singleton Instance ────────────────────────────────────────────────────
note_service = NoteService()
