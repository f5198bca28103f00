"""
NotesHub Backend — Notes Route Handlers
========================================

What:  Upload, browse/filter, view/download, flag and review notes.
How:   Routes extract request data, hand the active NoteStore to
       NoteService, and shape the HTTP response. Business rules live in
       the service.

Route Inventory:
    GET  /api/notes                  list with filters + cursor pagination
    POST /api/notes                  multipart upload
    GET  /api/notes/flagged          moderation queue
    GET  /api/notes/{id}             single note
    GET  /api/notes/{id}/view        file inline
    GET  /api/notes/{id}/download    file as attachment
    POST /api/notes/{id}/flag        flag with a reason
    POST /api/notes/{id}/review      approve or reject a flagged note

/api/notes/flagged is declared before /api/notes/{id} so "flagged" is not
parsed as a UUID.
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile
from fastapi.responses import FileResponse

from noteshub.schemas.note import (
    ErrorResponse,
    FlagRequest,
    NoteActionResponse,
    NoteCreate,
    NoteFilter,
    NoteListResponse,
    NoteResponse,
    ReviewRequest,
)
from noteshub.services.file_service import media_type_for
from noteshub.services.note_service import note_service
from noteshub.services.note_store import NoteStore
from noteshub.services.storage import get_note_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Notes"])


@router.get(
    "/notes",
    response_model=NoteListResponse,
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="Browse notes with filters",
    description=(
        "Returns notes newest first, optionally filtered by department, subject "
        "and year. Use next_cursor from the response to fetch the next page."
    ),
)
async def list_notes(
    response: Response,
    department: Optional[str] = Query(default=None, description="Exact department name"),
    subject: Optional[str] = Query(default=None, description="Exact subject name"),
    year: Optional[int] = Query(default=None, ge=1, le=4, description="Academic year (1-4)"),
    limit: int = Query(default=20, ge=1, le=100, description="Items per page (max 100)"),
    cursor: Optional[datetime] = Query(
        default=None,
        description="uploaded_at of the last item from the previous page (ISO 8601)",
    ),
    store: NoteStore = Depends(get_note_store),
) -> NoteListResponse:
    filters = NoteFilter(
        department=department or None,
        subject=subject or None,
        year=year,
        limit=limit,
        cursor=cursor,
    )
    result = await note_service.list_notes(store, filters)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.post(
    "/notes",
    status_code=201,
    response_model=NoteActionResponse,
    responses={
        400: {"description": "Invalid file type or size", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
    },
    summary="Upload a note",
    description="Upload a PDF, DOC, DOCX, PPT, PPTX, TXT or MD file (max 10MB) with its metadata.",
)
async def upload_note(
    file: UploadFile = File(..., description="Note file"),
    usn: str = Form(..., min_length=1, max_length=32),
    title: str = Form(..., min_length=1, max_length=200),
    department: str = Form(..., min_length=1, max_length=100),
    year: int = Form(..., ge=1, le=4),
    subject: str = Form(..., min_length=1, max_length=200),
    store: NoteStore = Depends(get_note_store),
) -> NoteActionResponse:
    content = await file.read()
    logger.info(
        "Received upload: filename=%s, size=%d bytes",
        file.filename or "unknown",
        len(content),
    )

    try:
        return await note_service.upload_note(
            store,
            metadata=NoteCreate(
                usn=usn, title=title, department=department, year=year, subject=subject
            ),
            filename=file.filename or "upload.txt",
            content=content,
            content_length=file.size,
        )
    finally:
        await file.close()


@router.get(
    "/notes/flagged",
    response_model=List[NoteResponse],
    summary="List flagged notes",
)
async def list_flagged_notes(
    store: NoteStore = Depends(get_note_store),
) -> List[NoteResponse]:
    return await note_service.list_flagged(store)


@router.get(
    "/notes/{note_id}",
    response_model=NoteResponse,
    responses={404: {"description": "Note not found", "model": ErrorResponse}},
    summary="Get a single note",
)
async def get_note(
    note_id: UUID,
    store: NoteStore = Depends(get_note_store),
) -> NoteResponse:
    return await note_service.get_note(store, note_id)


@router.get(
    "/notes/{note_id}/view",
    responses={404: {"description": "Note or file not found", "model": ErrorResponse}},
    summary="View a note's file inline",
)
async def view_note_file(
    note_id: UUID,
    store: NoteStore = Depends(get_note_store),
) -> FileResponse:
    path, original_filename = await note_service.get_file(store, note_id)
    return FileResponse(
        path=str(path),
        media_type=media_type_for(original_filename),
        filename=original_filename,
        content_disposition_type="inline",
        headers={"Cache-Control": "private, max-age=3600"},
    )


@router.get(
    "/notes/{note_id}/download",
    responses={404: {"description": "Note or file not found", "model": ErrorResponse}},
    summary="Download a note's file",
)
async def download_note_file(
    note_id: UUID,
    store: NoteStore = Depends(get_note_store),
) -> FileResponse:
    path, original_filename = await note_service.get_file(store, note_id)
    logger.info("Download: note=%s file=%s", note_id, original_filename)
    return FileResponse(
        path=str(path),
        media_type=media_type_for(original_filename),
        filename=original_filename,
    )


@router.post(
    "/notes/{note_id}/flag",
    response_model=NoteActionResponse,
    responses={
        400: {"description": "Missing reason", "model": ErrorResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
    },
    summary="Flag a note for review",
)
async def flag_note(
    note_id: UUID,
    body: FlagRequest,
    store: NoteStore = Depends(get_note_store),
) -> NoteActionResponse:
    return await note_service.flag_note(store, note_id, body.reason)


@router.post(
    "/notes/{note_id}/review",
    response_model=NoteActionResponse,
    responses={
        400: {"description": "Note is not flagged", "model": ErrorResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
    },
    summary="Approve or reject a flagged note",
)
async def review_note(
    note_id: UUID,
    body: ReviewRequest,
    store: NoteStore = Depends(get_note_store),
) -> NoteActionResponse:
    return await note_service.review_note(store, note_id, body.approved)
