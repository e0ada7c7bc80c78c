"""
Notekeep Backend: Middleware Package
======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Access Log] → [Audit] → [CORS] → Route Handler

    1. Request ID FIRST: every later log line and the response carry it
    2. Access log: one line per request with status and duration
    3. Audit: captures the request/response pair for the logs table
    4. CORS: Applied by FastAPI's CORSMiddleware (handles preflight)

    The order is reversed for responses, so the audit middleware sees the
    final status code and body produced by the route and exception handlers.
"""
