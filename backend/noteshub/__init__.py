"""
NotesHub Backend — Package Initializer
=======================================

What: Marks the `noteshub` directory as a Python package.
Who:  Imported by uvicorn (noteshub.main:app), Alembic, pytest and the
      `noteshub` command-line tool.

Layout:

    ┌─────────────────────────────────────┐
    │     Routes / Functions (HTTP)       │  ← FastAPI routers, Cloud Function app
    ├─────────────────────────────────────┤
    │        Services (Business)          │  ← notes, files, status, storage
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← async SQLAlchemy sessions
    └─────────────────────────────────────┘

    client/ : status poller, indicator renderer, page-visit tracker
    tools/  : keep-alive pinger, tunnel scripts, config rewriting, CLI
"""

__version__ = "1.0.0"
