"""
Notekeep Backend: Request ID Middleware
=========================================

What:  Assigns a correlation ID to each incoming request and echoes it back.
Why:   Every log entry from one request shares the same ID, and clients can
       quote the X-Request-ID from an error response.
How:   Takes the client's X-Request-ID or generates a short UUID, stores it
       in a ContextVar and on request.state, and sets the response header.
When:  Outermost middleware (runs before all other processing).
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one thread each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # 8 chars is enough for correlation and reads better in logs
        rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())[:8]

        # Left set after the response so the server-error handler, which runs
        # outside this middleware, can still report it
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
