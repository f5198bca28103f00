"""
NotesHub Backend — Request Logging Middleware
==============================================

What:  One access-log line per HTTP request with status and duration.
Who:   Applied to every request after RequestIDMiddleware, so the line
       carries the request's correlation ID.

Log line:
    GET /api/notes 200 12.3ms [a1b2c3d4] from 192.168.1.100

Level follows the status: 5xx → ERROR, 4xx → WARNING, otherwise INFO.
Health probes (/health, /test, /api/db-status) are not logged: the status
poller and the keep-alive pinger hit them every few seconds to minutes.

Request bodies, uploaded files and auth headers are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from noteshub.middleware.request_id import request_id_var

logger = logging.getLogger("noteshub.access")

QUIET_PATHS = {"/health", "/test", "/api/db-status"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status, duration, request ID and client IP."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()

        client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
        method = request.method
        path = request.url.path
        rid = request_id_var.get("")

        if path in QUIET_PATHS:
            return await call_next(request)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
