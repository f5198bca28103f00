"""
NotesHub Backend — Test Configuration (conftest.py)
====================================================

Shared pytest fixtures for the whole suite.

Fixture Hierarchy:
    Function-scoped:
    ├── memory_store: fresh MemoryNoteStore
    ├── installed_store: memory_store installed in the storage registry
    ├── temp_storage: temporary upload directory
    ├── sample_note: a persisted Note in memory_store
    └── test_client: httpx AsyncClient bound to the FastAPI app
"""

import os
import tempfile

# Test settings must be in place before noteshub.config is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="noteshub_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["ENVIRONMENT"] = "test"
os.environ["ALLOW_FALLBACK_STORAGE"] = "true"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from noteshub.models.note import Note
from noteshub.services.memory_store import MemoryNoteStore
from noteshub.services.storage import storage


@pytest.fixture
def memory_store():
    return MemoryNoteStore()


@pytest.fixture
def installed_store(memory_store):
    """Installs memory_store as the primary (non-fallback) store."""
    storage.use(memory_store, fallback=False)
    yield memory_store
    storage.reset()


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_note_data():
    return {
        "usn": "1AB21CS001",
        "title": "Graph Algorithms",
        "department": "Computer Science",
        "year": 2,
        "subject": "Data Structures",
        "filename": "2025/03/02/sample.pdf",
        "original_filename": "graphs.pdf",
    }


@pytest_asyncio.fixture
async def sample_note(memory_store, sample_note_data):
    return await memory_store.add(Note(**sample_note_data))


@pytest_asyncio.fixture
async def test_client(installed_store):
    """
    HTTPX client talking to the app through ASGITransport.

    The lifespan is not run, so the storage registry keeps the store that
    installed_store put there.
    """
    from noteshub.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
