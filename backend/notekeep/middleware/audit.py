"""
Notekeep Backend: Request Audit Middleware
============================================

What:  Captures every request/response pair and hands it to the request log sink.
Why:   The `logs` table is the audit trail behind GET /logs.
How:   Reads the request body before the route runs and the response body
       after, redacts secrets, truncates, and calls `sink.submit()`. The
       submit never waits, so a slow or failing database does not delay
       the response.

Redaction:
    - `Authorization` and `Cookie` header values become ***MASKED***
    - Any `password` field in a JSON request body becomes ***MASKED***
    - Bodies that are not UTF-8 text are stored as `<binary N bytes>`
    - Bodies over `body_limit` bytes are cut and marked `...[truncated]`
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from notekeep.services.request_log_sink import RequestLogEntry

logger = logging.getLogger(__name__)

MASK = "***MASKED***"
MASKED_HEADERS = frozenset({"authorization", "cookie"})
MASKED_FIELDS = frozenset({"password"})
TRUNCATION_MARKER = "...[truncated]"


def redact_headers(headers: Any) -> str:
    """Serialize request headers as JSON text with secret values masked."""
    redacted = {}
    for name, value in headers.items():
        key = name.lower()
        redacted[key] = MASK if key in MASKED_HEADERS else value
    return json.dumps(redacted, sort_keys=True)


def _mask_fields(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: (MASK if isinstance(k, str) and k.lower() in MASKED_FIELDS else _mask_fields(v))
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_mask_fields(v) for v in value]
    return value


def redact_json_body(text: str) -> str:
    """Mask password fields if `text` is a JSON document; other text is returned as is."""
    try:
        document = json.loads(text)
    except ValueError:
        return text
    if not isinstance(document, (dict, list)):
        return text
    return json.dumps(_mask_fields(document))


def render_body(raw: bytes, limit: int, redact: bool = False) -> Optional[str]:
    """
    Turn a captured body into the text stored in the logs table.

    Returns None for an empty body.
    """
    if not raw:
        return None
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        return f"<binary {len(raw)} bytes>"

    if redact:
        text = redact_json_body(text)

    encoded = text.encode("utf-8")
    if len(encoded) > limit:
        text = encoded[:limit].decode("utf-8", errors="ignore") + TRUNCATION_MARKER
    return text


class RequestAuditMiddleware(BaseHTTPMiddleware):
    """
    Args:
        app:        Downstream ASGI app
        body_limit: Bytes of each body kept in the audit row
    """

    def __init__(self, app: ASGIApp, body_limit: int = 10_000):
        super().__init__(app)
        self.body_limit = body_limit

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        received_at = datetime.now(timezone.utc)
        request_body = await request.body()

        try:
            response = await call_next(request)
        except Exception:
            self._submit(request, received_at, request_body, b"", 500)
            raise

        # Drain the streamed body so it can be both recorded and returned
        chunks = [chunk async for chunk in response.body_iterator]
        response_body = b"".join(
            chunk if isinstance(chunk, bytes) else chunk.encode("utf-8") for chunk in chunks
        )

        self._submit(request, received_at, request_body, response_body, response.status_code)

        # raw_headers keeps repeated headers such as multiple Set-Cookie lines
        rebuilt = Response(content=response_body, status_code=response.status_code)
        rebuilt.raw_headers = [
            (name, value) for name, value in response.raw_headers if name.lower() != b"content-length"
        ]
        rebuilt.raw_headers.append((b"content-length", str(len(response_body)).encode("latin-1")))
        return rebuilt

    def _submit(
        self,
        request: Request,
        received_at: datetime,
        request_body: bytes,
        response_body: bytes,
        status_code: int,
    ) -> None:
        sink = getattr(request.app.state, "request_log_sink", None)
        if sink is None:
            return

        entry = RequestLogEntry(
            datetime=received_at,
            method=request.method,
            endpoint=request.url.path[:500],
            headers=redact_headers(request.headers),
            request_body=render_body(request_body, self.body_limit, redact=True),
            response_body=render_body(response_body, self.body_limit),
            status_code=status_code,
        )
        sink.submit(entry)
