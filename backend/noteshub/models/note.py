"""
NotesHub Backend — Note SQLAlchemy Model
=========================================

What:  ORM model representing the `notes` table.
Who:   Used by SqlNoteStore for persistence, by MemoryNoteStore as its
       in-process record type, and by Alembic for schema management.

Table Design:
    - UUID primary key: non-sequential, generated in Python so both stores
      assign ids the same way
    - filename: relative path from STORAGE_ROOT to the uploaded file
    - original_filename: name the uploader's browser sent (download name)
    - is_flagged / flag_reason / reviewed_at / is_approved: moderation state
    - uploaded_at: UTC with timezone

    Index on uploaded_at DESC serves the default "newest first" listing;
    the composite (department, subject, year) index serves the filter bar.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from noteshub.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Note(Base):
    """
    A shared study note.

    Lifecycle:
        1. Created on upload (is_flagged=False, is_approved=True)
        2. Flagged by a reader with a reason (is_flagged=True)
        3. Reviewed: approved → unflagged with reviewed_at stamped;
           rejected → row and stored file deleted
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # University seat number of the uploader
    usn: Mapped[str] = mapped_column(String(32), nullable=False)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    department: Mapped[str] = mapped_column(String(100), nullable=False)

    # 1-4 for undergraduate years
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    subject: Mapped[str] = mapped_column(String(200), nullable=False)

    # Format: YYYY/MM/DD/<uuid>.<ext>
    filename: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Relative path from storage root to the uploaded file",
    )
    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    # ── Moderation ────────────────────────────────────────────────────────
    is_flagged: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    flag_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    is_approved: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )

    __table_args__ = (
        Index("idx_notes_uploaded_at", uploaded_at.desc()),
        Index("idx_notes_department_subject_year", "department", "subject", "year"),
        CheckConstraint("year BETWEEN 1 AND 4", name="ck_notes_year_range"),
    )

    def __repr__(self) -> str:
        return (
            f"<Note(id={self.id}, title='{self.title}', "
            f"flagged={self.is_flagged}, uploaded_at='{self.uploaded_at}')>"
        )
