"""
Repasties — Middleware Package
===============================

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    Request ID runs first so the access log line and every log record of
    the request carry the same ID.
"""
