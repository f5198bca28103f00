"""Create notes table

Revision ID: 001
Revises: None
Create Date: 2025-03-02 00:00:00.000000+00:00

Creates `notes` with uploader metadata, the stored file location and the
moderation columns, plus the listing and filter indexes.

Rollback: downgrade() drops the table (all note rows are lost; stored
files stay on disk).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "notes",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("usn", sa.String(32), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("department", sa.String(100), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("subject", sa.String(200), nullable=False),
        sa.Column(
            "filename",
            sa.String(255),
            nullable=False,
            comment="Relative path from storage root to the uploaded file",
        ),
        sa.Column("original_filename", sa.String(255), nullable=False),
        sa.Column(
            "uploaded_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "is_flagged", sa.Boolean(), server_default=sa.text("false"), nullable=False
        ),
        sa.Column("flag_reason", sa.Text(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "is_approved", sa.Boolean(), server_default=sa.text("true"), nullable=False
        ),
        sa.CheckConstraint("year BETWEEN 1 AND 4", name="ck_notes_year_range"),
        sa.PrimaryKeyConstraint("id"),
    )

    # Default listing is newest first
    op.create_index("idx_notes_uploaded_at", "notes", [sa.text("uploaded_at DESC")])
    op.create_index(
        "idx_notes_department_subject_year",
        "notes",
        ["department", "subject", "year"],
    )


def downgrade() -> None:
    op.drop_index("idx_notes_department_subject_year", table_name="notes")
    op.drop_index("idx_notes_uploaded_at", table_name="notes")
    op.drop_table("notes")
