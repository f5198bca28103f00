"""
NotesHub Backend — Pydantic Request/Response Schemas (Notes)
=============================================================

What:  Pydantic models defining the notes API contract.
How:   FastAPI validates request bodies/query strings against these models,
       serializes responses through them, and builds the OpenAPI docs.

Schemas are separate from the SQLAlchemy model so the API controls exactly
which fields are exposed (the stored relative path never leaves the server).
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, StrictBool

from noteshub.models.note import Note


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class NoteResponse(BaseModel):
    """
    Full representation of a shared note.

    view_url / download_url point at the file-serving routes; the storage
    path itself is never exposed.
    """
    id: uuid.UUID = Field(description="Unique note identifier (UUID)")
    usn: str = Field(description="Uploader's university seat number")
    title: str
    department: str
    year: int = Field(description="Academic year (1-4)")
    subject: str
    original_filename: str = Field(description="File name as uploaded")
    view_url: str = Field(description="URL that serves the file inline")
    download_url: str = Field(description="URL that serves the file as an attachment")
    uploaded_at: datetime = Field(description="Upload time (UTC ISO 8601)")
    is_flagged: bool = Field(description="Whether the note is awaiting moderation")
    flag_reason: Optional[str] = Field(default=None)
    reviewed_at: Optional[datetime] = Field(default=None)
    is_approved: bool = Field(default=True)

    @classmethod
    def from_note(cls, note: Note) -> "NoteResponse":
        return cls(
            id=note.id,
            usn=note.usn,
            title=note.title,
            department=note.department,
            year=note.year,
            subject=note.subject,
            original_filename=note.original_filename,
            view_url=f"/api/notes/{note.id}/view",
            download_url=f"/api/notes/{note.id}/download",
            uploaded_at=note.uploaded_at,
            is_flagged=bool(note.is_flagged),
            flag_reason=note.flag_reason,
            reviewed_at=note.reviewed_at,
            is_approved=bool(note.is_approved),
        )


class NoteListResponse(BaseModel):
    """
    Paginated response for GET /api/notes.

    Cursor pagination: next_cursor is the uploaded_at of the last item on
    this page; the next request returns items strictly older than it.
    """
    notes: List[NoteResponse] = Field(description="Notes on this page")
    total_count: int = Field(description="Total number of notes matching the filters")
    next_cursor: Optional[str] = Field(
        default=None,
        description="Cursor for next page (ISO datetime). Null if no more pages.",
    )
    has_more: bool = Field(description="Whether more pages are available")


class NoteActionResponse(BaseModel):
    """Returned by upload, flag and review: a human message plus the note."""
    message: str
    note: NoteResponse


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class NoteFilter(BaseModel):
    """
    Listing filters and pagination.

    department/subject match exactly; year is 1-4. Omitted filters match
    every note.
    """
    department: Optional[str] = Field(default=None)
    subject: Optional[str] = Field(default=None)
    year: Optional[int] = Field(default=None, ge=1, le=4)
    limit: int = Field(default=20, ge=1, le=100)
    cursor: Optional[datetime] = Field(default=None)


class NoteCreate(BaseModel):
    """Metadata accompanying an uploaded file."""
    usn: str = Field(min_length=1, max_length=32)
    title: str = Field(min_length=1, max_length=200)
    department: str = Field(min_length=1, max_length=100)
    year: int = Field(ge=1, le=4)
    subject: str = Field(min_length=1, max_length=200)


class FlagRequest(BaseModel):
    """
    Body for POST /api/notes/{id}/flag.

    Blank reasons pass schema validation but are rejected by the service
    with a 400, matching the other business-rule errors.
    """
    reason: str = Field(default="", max_length=1000)


class ReviewRequest(BaseModel):
    """Body for POST /api/notes/{id}/review. approved must be a real boolean."""
    approved: StrictBool


# ══════════════════════════════════════════════════════════════════════════
# Error Response Model
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Please provide a reason for flagging this content",
            "details": {"field": "reason"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")
