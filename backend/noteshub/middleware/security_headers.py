"""
NotesHub Backend — Security Headers Middleware
===============================================

What:  Adds browser security headers to every response.
Who:   Installed on both the main API app and the Cloud Function app.

Headers:
    X-Content-Type-Options: nosniff
    X-Frame-Options: DENY
    X-XSS-Protection: 1; mode=block
    Referrer-Policy: strict-origin-when-cross-origin   (optional)
    Content-Security-Policy: <policy>                  (optional)
    Strict-Transport-Security: <value>                 (optional; HTTPS deployments)
"""

from typing import Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

BASE_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}

HSTS_VALUE = "max-age=31536000; includeSubDomains"

API_CONTENT_SECURITY_POLICY = (
    "default-src 'self'; "
    "img-src 'self' data: blob:; "
    "object-src 'none'; "
    "frame-ancestors 'none'; "
    "base-uri 'self'; "
    "form-action 'self'"
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Sets a fixed header set on each response.

    Args:
        hsts: Strict-Transport-Security value, or None to omit it
        referrer_policy: Referrer-Policy value, or None to omit it
        content_security_policy: CSP value, or None to omit it
    """

    def __init__(
        self,
        app: ASGIApp,
        hsts: Optional[str] = HSTS_VALUE,
        referrer_policy: Optional[str] = None,
        content_security_policy: Optional[str] = None,
    ):
        super().__init__(app)
        self.headers = dict(BASE_HEADERS)
        if referrer_policy:
            self.headers["Referrer-Policy"] = referrer_policy
        if content_security_policy:
            self.headers["Content-Security-Policy"] = content_security_policy
        if hsts:
            self.headers["Strict-Transport-Security"] = hsts

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers[name] = value
        return response
