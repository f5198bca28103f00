"""
NotesHub Backend — Serverless Function App
===========================================

What:  The minimal API deployed as a serverless function next to the
       static frontend. Serves GET /api/hello.
How:   A separate FastAPI app with permissive CORS (any origin, with
       credentials) and the security headers, HSTS included.

Run locally:  uvicorn noteshub.functions:app --port 5001
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from noteshub import __version__
from noteshub.middleware.security_headers import SecurityHeadersMiddleware
from noteshub.schemas.status import MessageResponse

HELLO_MESSAGE = "Hello from Firebase Functions!"


def create_functions_app() -> FastAPI:
    app = FastAPI(
        title="NotesHub Functions",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )

    app.add_middleware(
        CORSMiddleware,
        # Reflects the caller's origin, so credentials stay allowed
        allow_origin_regex=".*",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)

    @app.get("/api/hello", response_model=MessageResponse)
    async def hello() -> MessageResponse:
        return MessageResponse(message=HELLO_MESSAGE)

    return app


app = create_functions_app()
