# Client package init
"""
NotesHub Client Helpers
=======================

Client-side behavior of the NotesHub frontend, as reusable async code:

    - tasks.py:      RepeatingTask (cancellable fixed-interval runner)
    - indicator.py:  indicator state + render_status
    - poller.py:     StatusPoller for GET /api/db-status
    - visits.py:     KeyValueStore + PageVisitTracker
"""
