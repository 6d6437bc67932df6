"""Client-side workflow: interview, payment gate, session continuity and archive.

These components drive the HTTP API the way the browser app does. They keep
their own state and talk to the server only through ``LetterApiClient``.
"""
