"""Docbox route table.

Three routes are mounted under the configured base path:

  - ``POST /box``: create a document box. The JSON body must be an object
    with a string ``scope``; write access is checked for that scope.
  - ``GET /box/{scope}/{path*}``: read forwarding, read access checked.
  - ``POST|PATCH|PUT|DELETE /box/{scope}/{path*}``: write forwarding. The
    request is classified first, since search endpoints use POST but only
    need read access.

Forwarding routes never parse the request body or decode the path. The raw
byte stream and the still-encoded path are relayed to docbox, so uploads and
file names arrive exactly as sent. A path that leaves ``/box/{scope}`` once
decoded is rejected before the access check.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping
from urllib.parse import quote_from_bytes

from fastapi import APIRouter, FastAPI
from starlette.requests import Request
from starlette.responses import Response

from .access import (
    require_access,
    require_box_path,
    require_object_payload,
    require_scope,
)
from .classifier import AccessKind, classify_request
from .client import DocboxClient, RequestContent
from .forwarding import forward_request
from .identity import resolve_identity
from .observability.logging import bind_docbox_context, get_logger
from .options import GatewayOptions

logger = get_logger(__name__)

Endpoint = Callable[[Request], Awaitable[Response]]

READ_METHODS: tuple[str, ...] = ("GET",)
WRITE_METHODS: tuple[str, ...] = ("POST", "PATCH", "PUT", "DELETE")


@dataclass(frozen=True, slots=True)
class DocboxRoute:
    """Static definition of one docbox route.

    Attributes:
        name: Route name (unique within the gateway).
        paths: Path patterns the route is served on. Forwarding routes use
            two patterns so ``/box/{scope}`` matches without a tail.
        methods: HTTP methods handled.
        endpoint: The request handler.
        options: FastAPI route keyword arguments.
    """

    name: str
    paths: tuple[str, ...]
    methods: tuple[str, ...]
    endpoint: Endpoint
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


# Characters kept as-is when re-quoting a raw path; ``%`` keeps existing escapes.
_RAW_PATH_SAFE = "/%:@!$&'()*+,;=-._~"


def get_forward_path(request: Request, base_path: str) -> str:
    """Return the request path, still percent-encoded, without the base path.

    ``request.url.path`` is decoded, which would turn an encoded ``%2F`` in
    a file name into a real separator on the way to docbox. The raw ASGI
    path is used instead.
    """
    raw_path: bytes | None = request.scope.get("raw_path")
    if raw_path is None:
        raw_path = request.url.path.encode("utf-8")
    path = quote_from_bytes(raw_path.split(b"?", 1)[0], safe=_RAW_PATH_SAFE)
    if base_path and path.startswith(base_path):
        path = path[len(base_path):]
    return path


def _request_body_stream(request: Request) -> RequestContent:
    """Raw body stream for a forwarded write, or None when there is no body."""
    headers = request.headers
    if "content-length" in headers or "transfer-encoding" in headers:
        return request.stream()
    return None


def _decode_json_payload(body: bytes) -> Any:
    if not body:
        return None
    try:
        return json.loads(body)
    except ValueError:
        return None


def create_docbox_routes(options: GatewayOptions, client: DocboxClient) -> list[DocboxRoute]:
    """Build the docbox route definitions.

    Args:
        options: Gateway options.
        client: Shared docbox client used by every route.

    Returns:
        Route definitions in registration order: create box, read
        forwarding, write forwarding.
    """
    base_path = options.normalized_base_path
    base_route_options = MappingProxyType(dict(options.base_route_options))
    forward_route_options = MappingProxyType(options.forward_route_options)

    async def create_box(request: Request) -> Response:
        """Create a document box."""
        body = await request.body()
        payload = require_object_payload(_decode_json_payload(body))
        scope = require_scope(payload.get("scope"))

        path = get_forward_path(request, base_path)
        bind_docbox_context(scope=scope, access=AccessKind.WRITE, path=path)
        await require_access(AccessKind.WRITE, options, request, scope, path)

        tenant, user = await resolve_identity(options, request)
        return await forward_request(
            client, request, tenant, user, path,
            content=body, access=AccessKind.WRITE,
        )

    async def forward_read(request: Request) -> Response:
        """Forward a read request to docbox."""
        scope = require_scope(request.path_params.get("scope"))

        path = require_box_path(get_forward_path(request, base_path), scope)
        bind_docbox_context(scope=scope, access=AccessKind.READ, path=path)
        await require_access(AccessKind.READ, options, request, scope, path)

        tenant, user = await resolve_identity(options, request)
        return await forward_request(
            client, request, tenant, user, path, access=AccessKind.READ,
        )

    async def forward_write(request: Request) -> Response:
        """Forward a write request (or POST search) to docbox."""
        scope = require_scope(request.path_params.get("scope"))

        path = require_box_path(get_forward_path(request, base_path), scope)

        # Searching uses POST but only requires read access.
        access = classify_request(request.method, path)
        bind_docbox_context(scope=scope, access=access, path=path)
        await require_access(access, options, request, scope, path)

        tenant, user = await resolve_identity(options, request)
        return await forward_request(
            client, request, tenant, user, path,
            content=_request_body_stream(request), access=access,
        )

    forward_paths = (f"{base_path}/box/{{scope}}", f"{base_path}/box/{{scope}}/{{path:path}}")

    return [
        DocboxRoute(
            name="docbox_create_box",
            paths=(f"{base_path}/box",),
            methods=("POST",),
            endpoint=create_box,
            options=base_route_options,
        ),
        DocboxRoute(
            name="docbox_forward_read",
            paths=forward_paths,
            methods=READ_METHODS,
            endpoint=forward_read,
            options=forward_route_options,
        ),
        DocboxRoute(
            name="docbox_forward_write",
            paths=forward_paths,
            methods=WRITE_METHODS,
            endpoint=forward_write,
            options=forward_route_options,
        ),
    ]


def build_router(routes: list[DocboxRoute]) -> APIRouter:
    """Register route definitions on a new APIRouter."""
    router = APIRouter()
    for route in routes:
        for path in route.paths:
            router.add_api_route(
                path,
                route.endpoint,
                methods=list(route.methods),
                name=route.name,
                response_model=None,
                **route.options,
            )
    return router


def create_docbox_router(
    options: GatewayOptions,
    client: DocboxClient | None = None,
) -> APIRouter:
    """Create an APIRouter serving the docbox routes.

    When ``client`` is omitted a new one is created and is never closed.
    Prefer DocboxGateway, which owns and closes its client.
    """
    if client is None:
        client = DocboxClient.from_options(options)
    return build_router(create_docbox_routes(options, client))


class DocboxGateway:
    """Docbox routes plus the shared client they forward through.

    Usage:
        gateway = DocboxGateway(options)
        gateway.register(app)
        ...
        await gateway.aclose()  # on shutdown
    """

    name = "docbox-gateway"

    def __init__(
        self,
        options: GatewayOptions,
        *,
        client: DocboxClient | None = None,
    ) -> None:
        self.options = options
        self.client = client or DocboxClient.from_options(options)
        self.routes = create_docbox_routes(options, self.client)
        self.router = build_router(self.routes)

    def register(self, app: FastAPI) -> None:
        """Include the docbox routes in ``app``."""
        app.include_router(self.router)
        logger.info(
            "docbox_gateway_registered",
            base_path=self.options.normalized_base_path or "/",
        )

    async def aclose(self) -> None:
        await self.client.aclose()
