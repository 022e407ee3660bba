"""Request context middleware for the standalone gateway application.

``RequestContextMiddleware`` gives every request a correlation ID, starts
it with a clean set of bound log fields, logs the completed request, and
echoes the ID in the ``X-Request-ID`` response header. The ID is never
forwarded to docbox.
"""

from __future__ import annotations

import re
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from .logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# 8-128 chars of letters, digits or dashes; anything else is replaced.
_VALID_REQUEST_ID = re.compile(r"^[a-zA-Z0-9\-]{8,128}$")


def resolve_request_id(incoming: str | None) -> str:
    """Keep a well-formed caller-supplied ID, otherwise mint a UUID."""
    if incoming and _VALID_REQUEST_ID.match(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request ID to the log context and log every completed request.

    Duration covers the time to response headers; relayed docbox bodies
    keep streaming afterwards.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        start = time.perf_counter()
        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
