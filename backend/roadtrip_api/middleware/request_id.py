"""
Road Trip Planner Backend — Request ID Middleware
==================================================

What:  Assigns a correlation ID to each request and echoes it in the response.
Why:   Every log line and error body from one request shares the same ID.
How:   Reuses the client's X-Request-ID header or generates a short UUID,
       stores it in a ContextVar (for loggers/handlers) and request.state.
Who:   Applied to every request via Starlette middleware.
When:  Outermost middleware (runs before all other processing).
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── Context Variable ──────────────────────────────────────────────────────
# Coroutine-local: concurrent requests on the same event loop each see
# their own value.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    """8 hex chars: short enough for log lines, unique enough for correlation."""
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Use the client's X-Request-ID header when present
        2. Otherwise generate a new short ID
        3. Store it in the ContextVar and request.state
        4. Add it to the response headers
    """

    header_name = "X-Request-ID"

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(self.header_name) or new_request_id()

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[self.header_name] = rid
        return response
