"""
NotesHub Backend — Status & Health Schemas
===========================================

What:  Contracts for /api/db-status, /health, /test and /api/hello.
Who:   StatusReport is shared by the server (which produces it) and the
       client status poller (which parses it), so both sides agree on the
       three allowed states.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

StatusValue = Literal["ok", "warning", "error"]


class StatusReport(BaseModel):
    """
    Database status as reported by GET /api/db-status.

    status:
        ok     : primary database reachable
        warning: running on fallback (in-memory) storage
        error  : database unreachable or the status check failed
    """
    status: StatusValue = Field(description="ok, warning or error")
    message: str = Field(description="Human-readable explanation")
    fallback: bool = Field(description="Whether fallback storage is in use")
    error: Optional[str] = Field(
        default=None,
        description="Error class name when status is 'error' (never a stack trace)",
    )


class HealthResponse(BaseModel):
    """Response for GET /health (monitoring and load balancer probes)."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="connected, fallback or disconnected")
    storage: str = Field(description="Active note store: database or memory")
    uptime_seconds: float = Field(description="Seconds since service started")


class MessageResponse(BaseModel):
    """Single-message body used by /test and /api/hello."""
    message: str
