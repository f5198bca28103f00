# Routes package init
"""
NotesHub Backend — API Routes Package
======================================

Route Inventory:
    - notes.py:   /api/notes...        (upload, browse, view, flag, review)
    - health.py:  GET /api/db-status   (status indicator)
                  GET /health          (service health check)
                  GET /test            (keep-alive target)

Routes are thin: extract request data, call the service, shape the
response. Business logic belongs in services.
"""
