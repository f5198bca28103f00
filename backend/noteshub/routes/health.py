"""
NotesHub Backend — Health & Status Routes
==========================================

What:  Liveness and database-status endpoints.
Who:   GET /api/db-status: the client status poller (every 30-60s)
       GET /health       : Docker health checks, load balancers
       GET /test         : the keep-alive pinger (every 5 minutes)

Status levels for /health:
    healthy:   database storage reachable (HTTP 200)
    degraded:  serving from fallback storage (HTTP 200)
    unhealthy: database storage unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Response

from noteshub import __version__
from noteshub.schemas.status import HealthResponse, MessageResponse, StatusReport
from noteshub.services.status_service import check_database_status
from noteshub.services.storage import storage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/api/db-status",
    response_model=StatusReport,
    response_model_exclude_none=True,
    responses={500: {"description": "Database check failed", "model": StatusReport}},
    summary="Database status for the status indicator",
    description=(
        "Reports whether notes are served from the primary database (ok), from "
        "fallback in-memory storage (warning), or whether the database check "
        "failed (error, HTTP 500)."
    ),
)
async def db_status(response: Response) -> StatusReport:
    report = await check_database_status()
    if report.status == "error":
        response.status_code = 500
    return report


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    """
    Aggregate health of the service.

    Reuses the database status check; fallback storage counts as degraded
    because uploads will be lost on restart.
    """
    report = await check_database_status()

    if report.status == "ok":
        overall, database = "healthy", "connected"
    elif report.status == "warning":
        overall, database = "degraded", "fallback"
    else:
        overall, database = "unhealthy", "disconnected"
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=database,
        storage=storage.store.name if storage.initialized else "none",
        uptime_seconds=round(time.time() - _start_time, 2),
    )


@router.get("/test", response_model=MessageResponse, summary="Connectivity probe")
async def connectivity_test() -> MessageResponse:
    """Cheap endpoint for the keep-alive pinger and CORS smoke tests."""
    return MessageResponse(message="CORS is working!")
