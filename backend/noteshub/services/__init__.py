# Services package init
"""
NotesHub Backend — Services Layer
==================================

Business logic between the routes (HTTP) and persistence.

Service Inventory:
    - NoteStore (abstract): persistence interface for notes
    - SqlNoteStore: async SQLAlchemy implementation (PostgreSQL)
    - MemoryNoteStore: in-process fallback implementation
    - StorageRegistry (`storage`): picks primary or fallback store at startup
    - FileService: upload validation, storage and cleanup
    - NoteService: upload, browse, flag and review workflows
    - check_database_status: report behind GET /api/db-status

Services take the active NoteStore as an argument, so the same code runs
against either store and unit tests can pass a MemoryNoteStore directly.
"""
