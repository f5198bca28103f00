"""
NotesHub Backend — File Storage Service
========================================

What:  Validates, stores, resolves and removes uploaded note files.
How:   Checks extension, size and sniffed content type, writes to a
       date-organized directory under STORAGE_ROOT with a UUID filename,
       and resolves stored paths back to absolute paths for serving.
Who:   Called by NoteService (upload, reject) and the notes routes (serve).

Security Model:
    1. Extension allow-list (documents only)
    2. Size check (Content-Length first, then actual size)
    3. Content check: libmagic must agree with the extension
    4. UUID filename: no user input reaches the filesystem path
    5. resolve_path() refuses anything outside STORAGE_ROOT

Directory Structure:
    storage/
    └── 2024/
        └── 01/
            └── 15/
                ├── a1b2c3d4-5678.pdf
                └── e5f6g7h8-9012.docx
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Tuple

import aiofiles
import magic

from noteshub.config import settings
from noteshub.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Extension → media type used when serving the file back
ALLOWED_FILE_TYPES: Dict[str, str] = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".ppt": "application/vnd.ms-powerpoint",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ".txt": "text/plain",
    ".md": "text/markdown",
}

ALLOWED_EXTENSIONS = set(ALLOWED_FILE_TYPES)

# Extension → content types libmagic may report for a genuine file.
# OOXML files are zip containers and legacy Office files are OLE2
# containers; older libmagic builds report only the container.
_OOXML = ("application/zip", "application/octet-stream")
_OLE2 = ("application/CDFV2", "application/x-ole-storage", "application/vnd.ms-office")
SNIFFED_CONTENT_TYPES: Dict[str, FrozenSet[str]] = {
    ".pdf": frozenset({"application/pdf"}),
    ".doc": frozenset({"application/msword", *_OLE2}),
    ".docx": frozenset({ALLOWED_FILE_TYPES[".docx"], *_OOXML}),
    ".ppt": frozenset({"application/vnd.ms-powerpoint", *_OLE2}),
    ".pptx": frozenset({ALLOWED_FILE_TYPES[".pptx"], *_OOXML}),
}

# Plain-text extensions accept any text/* type (markdown sniffs as text/plain)
TEXT_EXTENSIONS = {".txt", ".md"}


def media_type_for(filename: str) -> str:
    """Media type for a stored or original filename (octet-stream if unknown)."""
    return ALLOWED_FILE_TYPES.get(Path(filename).suffix.lower(), "application/octet-stream")


class FileService:
    """
    Manages the uploaded-file lifecycle.

        validate_and_store() → (absolute_path, relative_path)
        resolve_path(relative_path) → absolute Path inside STORAGE_ROOT
        cleanup_file(absolute_path) → best-effort delete
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: str) -> str:
        """
        Returns the normalized (lowercase) extension.

        Raises:
            ValidationError if the extension is not allowed.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    "Invalid file type. Only PDF, DOC, DOCX, PPT, PPTX, TXT, "
                    "and MD files are allowed."
                ),
                field="file",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Reject empty files and files above settings.max_file_size.

        Args:
            content_length: Size the client declared (may be None or wrong)
            actual_size: Byte count actually received
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(
                message="The uploaded file is empty.",
                field="file",
            )

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller file.",
                field="file",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"File is too large ({actual_size / (1024 * 1024):.1f}MB). Maximum is {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_content_type(self, content: bytes, extension: str) -> str:
        """
        Sniff the content type from the file's magic bytes and check that it
        matches the extension, so a renamed file is refused.

        Returns:
            Detected MIME type string (e.g., "application/pdf")

        Raises:
            ValidationError if the content does not match the extension
            FileStorageError if detection itself fails
        """
        try:
            mime_type = magic.from_buffer(content[:8192], mime=True)
        except magic.MagicException as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if extension in TEXT_EXTENSIONS:
            allowed = mime_type.startswith("text/")
        else:
            allowed = mime_type in SNIFFED_CONTENT_TYPES.get(extension, frozenset())

        if not allowed:
            raise ValidationError(
                message=(
                    f"File content detected as '{mime_type}', which does not "
                    f"match the '{extension}' extension."
                ),
                field="file",
                context={"detected_mime": mime_type, "extension": extension},
            )

        logger.debug("Content type verified: %s for %s", mime_type, extension)
        return mime_type

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """Creates a YYYY/MM/DD/<uuid><ext> path. Returns (absolute, relative)."""
        now = datetime.now(timezone.utc)
        date_dir = now.strftime("%Y/%m/%d")
        unique_name = f"{uuid.uuid4()}{extension}"

        relative_path = f"{date_dir}/{unique_name}"
        absolute_path = self.storage_root / relative_path

        return absolute_path, relative_path

    async def store_file(self, content: bytes, extension: str) -> Tuple[str, str]:
        """
        Write validated content to disk with async I/O.

        Raises:
            FileStorageError if directory creation or the write fails.
        """
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)

            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)

            logger.info("File stored: %s (%d bytes)", relative_path, len(content))
            return str(absolute_path), relative_path

        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded file. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

    def resolve_path(self, relative_path: str) -> Path:
        """
        Map a stored relative path to an existing file inside STORAGE_ROOT.

        Raises:
            ValidationError: path escapes the storage root
            NotFoundError:   file no longer exists
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file path")
        if not full_path.is_file():
            raise NotFoundError(resource="file", resource_id=relative_path)
        return full_path

    async def cleanup_file(self, file_path: str) -> None:
        """
        Remove a file from storage. Best-effort: failures are logged only.

        When: upload failed after the write, or a flagged note was rejected.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
            else:
                logger.debug("Cleanup: file already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> Tuple[str, str]:
        """
        Extension check → size check → content check → write.

        Returns:
            (absolute_path, relative_path_for_db)
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        self.validate_content_type(content, ext)
        return await self.store_file(content, ext)


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()
