"""
NotesHub Backend — Database Status Service
===========================================

What:  Produces the StatusReport served by GET /api/db-status.
How:   Fallback storage active → "warning" without touching the database.
       Otherwise ping the active store: success → "ok", failure → "error".

    ┌───────────────┐  fallback   ┌─────────┐
    │ storage state │────────────▶│ warning │
    └──────┬────────┘             └─────────┘
           │ primary
           ▼
      store.ping() ── ok ──▶ ok
           │
           └─ raises ──────▶ error
"""

import logging

from noteshub.schemas.status import StatusReport
from noteshub.services.storage import StorageRegistry, storage

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "Using in-memory storage as fallback. Data will not persist across restarts."
OK_MESSAGE = "Database connection is active"
ERROR_MESSAGE = "Database connection test failed"


async def check_database_status(registry: StorageRegistry = storage) -> StatusReport:
    """
    Determine the current database status. Never raises.
    """
    try:
        if registry.fallback:
            return StatusReport(status="warning", message=FALLBACK_MESSAGE, fallback=True)

        await registry.store.ping()
        return StatusReport(status="ok", message=OK_MESSAGE, fallback=False)

    except Exception as e:
        logger.error("Database status check failed: %s", str(e))
        return StatusReport(
            status="error",
            message=ERROR_MESSAGE,
            fallback=False,
            error=type(e).__name__,
        )
