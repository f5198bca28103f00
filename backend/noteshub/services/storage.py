"""
NotesHub Backend — Storage Selection (Primary vs Fallback)
===========================================================

What:  Decides at startup which NoteStore serves the API and remembers
       whether that is the fallback.
How:   initialize() pings the database through SqlNoteStore. On failure,
       with ALLOW_FALLBACK_STORAGE enabled, it switches to MemoryNoteStore
       and sets `fallback`; otherwise the error propagates and startup fails.
Who:   Called from the application lifespan; read by the notes routes
       (get_note_store dependency) and by the status service.
"""

import logging
from typing import Optional

from noteshub.config import settings
from noteshub.database import create_tables
from noteshub.exceptions import DatabaseError
from noteshub.services.memory_store import MemoryNoteStore
from noteshub.services.note_store import NoteStore
from noteshub.services.sql_store import SqlNoteStore

logger = logging.getLogger(__name__)


class StorageRegistry:
    """Holds the active NoteStore and the fallback flag."""

    def __init__(self) -> None:
        self._store: Optional[NoteStore] = None
        self.fallback: bool = False

    @property
    def initialized(self) -> bool:
        return self._store is not None

    @property
    def store(self) -> NoteStore:
        if self._store is None:
            raise DatabaseError(
                message="Storage is not initialized yet. Please try again shortly.",
                context={"reason": "storage_not_initialized"},
            )
        return self._store

    def use(self, store: NoteStore, fallback: bool = False) -> None:
        """Install a store directly (tests, tooling)."""
        self._store = store
        self.fallback = fallback

    def reset(self) -> None:
        self._store = None
        self.fallback = False

    async def initialize(
        self,
        primary: Optional[NoteStore] = None,
        allow_fallback: Optional[bool] = None,
    ) -> NoteStore:
        """
        Select the note store for this process.

        Args:
            primary: Store to try first (defaults to SqlNoteStore()).
            allow_fallback: Overrides settings.allow_fallback_storage.

        Returns:
            The active store.

        Raises:
            Whatever the primary store's ping raised, when fallback is disabled.
        """
        primary = primary or SqlNoteStore()
        allow_fallback = (
            settings.allow_fallback_storage if allow_fallback is None else allow_fallback
        )

        try:
            await primary.ping()
            if settings.db_auto_create and isinstance(primary, SqlNoteStore):
                await create_tables()
        except Exception as e:
            if not allow_fallback:
                logger.error("Database unavailable and fallback storage disabled: %s", str(e))
                raise
            logger.error("Database storage initialization failed: %s", str(e))
            logger.warning(
                "Using in-memory storage as fallback. Data will not persist across restarts."
            )
            self.use(MemoryNoteStore(), fallback=True)
            return self.store

        logger.info("Using %s storage for data persistence", primary.name)
        self.use(primary, fallback=False)
        return primary


# One storage decision per process
storage = StorageRegistry()


def get_note_store() -> NoteStore:
    """FastAPI dependency returning the active NoteStore."""
    return storage.store
