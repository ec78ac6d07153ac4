"""
ReWear Backend — Middleware Package
=====================================

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    - Rate Limit runs first so rejected requests do no further work
    - Request ID is set before Logging so access lines carry the correlation ID
"""
