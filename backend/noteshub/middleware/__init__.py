# Middleware package init
"""
NotesHub Backend — Middleware Package
======================================

Cross-cutting concerns applied to every request.

Middleware Chain (main API app):
    Request → [Rate Limit] → [Request ID] → [Logging] → [Security Headers] → [CORS] → Route

    1. Rate Limit first: abusive clients are rejected before any work
    2. Request ID: correlation ID for logs and error bodies
    3. Logging: one access line per request
    4. Security headers: nosniff, DENY, XSS protection, HSTS in production
    5. CORS: FastAPI's CORSMiddleware (handles preflight)

The Cloud Function app (noteshub.functions) uses only CORS and the
security headers.
"""
