"""Forwarding engine: relays an authorized request to docbox.

The request to docbox:
1. Carries only the content negotiation headers of the caller
   (accept, content-type, content-length).
2. Carries the tenant and user headers resolved by the gateway, set after
   the caller's headers so they can never be spoofed.
3. Keeps the caller's method, forward path (still percent-encoded), query
   string, and raw body.

The response from docbox is returned unmodified: status code, every header
(repeated headers included), and the raw body, streamed chunk by chunk.
"""

from __future__ import annotations

import time
from typing import Mapping

import httpx
from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import StreamingResponse

from .classifier import AccessKind
from .client import DocboxClient, RequestContent
from .identity import build_identity_headers
from .models import DocboxRequestTenant, DocboxRequestUser
from .observability.logging import get_logger
from .observability.metrics import (
    DOCBOX_FORWARD_DURATION_SECONDS,
    DOCBOX_FORWARD_REQUESTS_TOTAL,
)

logger = get_logger(__name__)

# Caller headers carried through to docbox. Everything else is dropped.
FORWARD_REQUEST_HEADERS: tuple[str, ...] = (
    "accept",
    "content-type",
    "content-length",
)


def build_forward_headers(
    incoming_headers: Mapping[str, str],
    tenant: DocboxRequestTenant,
    user: DocboxRequestUser | None,
) -> dict[str, str]:
    """Build the header set for a docbox call.

    ``incoming_headers`` must support case-insensitive lookup (Starlette
    ``Headers``) or use lowercase keys.
    """
    forwarded: dict[str, str] = {}

    # 1. Content related caller headers.
    for name in FORWARD_REQUEST_HEADERS:
        value = incoming_headers.get(name)
        if value is not None:
            forwarded[name] = value

    # 2. Tenant and user identity, always last.
    forwarded.update(build_identity_headers(tenant, user))
    return forwarded


def relay_response(client: DocboxClient, upstream: httpx.Response) -> StreamingResponse:
    """Wrap a streamed docbox response for the caller without modifying it."""
    response = StreamingResponse(
        client.iter_raw(upstream),
        status_code=upstream.status_code,
        background=BackgroundTask(upstream.aclose),
    )
    # Copy raw header bytes so repeated headers and non-ASCII values
    # survive unchanged. ASGI requires lowercase names.
    response.raw_headers = [
        (name.lower(), value) for name, value in upstream.headers.raw
    ]
    return response


async def forward_request(
    client: DocboxClient,
    request: Request,
    tenant: DocboxRequestTenant,
    user: DocboxRequestUser | None,
    path: str,
    *,
    content: RequestContent = None,
    access: AccessKind = AccessKind.READ,
) -> StreamingResponse:
    """Forward ``request`` to docbox at ``path`` and relay the response.

    Args:
        client: Shared docbox client.
        request: The inbound request.
        tenant: Resolved tenant for the request.
        user: Resolved user, or None.
        path: Forward path (request path without the gateway base path).
        content: Raw body to send: bytes, an async byte stream, or None.
        access: Access kind the request was authorized for (metrics only).

    Returns:
        A streaming response mirroring the docbox response.
    """
    method = request.method.upper()
    headers = build_forward_headers(request.headers, tenant, user)

    start = time.perf_counter()
    upstream = await client.send(
        method,
        path,
        headers=headers,
        content=content,
        params=request.query_params.multi_items(),
    )
    elapsed = time.perf_counter() - start
    DOCBOX_FORWARD_DURATION_SECONDS.labels(
        method=method, access=access.value,
    ).observe(elapsed)
    DOCBOX_FORWARD_REQUESTS_TOTAL.labels(
        method=method, access=access.value, status=str(upstream.status_code),
    ).inc()
    logger.debug(
        "docbox_forwarded",
        method=method,
        status=upstream.status_code,
        duration_ms=round(elapsed * 1000, 2),
    )

    return relay_response(client, upstream)
