"""Access control gate for docbox routes.

Runs the host-supplied read or write predicate before anything else
touches the network. A denial ends the request with 403; a predicate
that raises propagates unchanged.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import unquote

from fastapi import HTTPException
from starlette.requests import Request

from .classifier import AccessKind
from .observability.logging import get_logger
from .observability.metrics import DOCBOX_ACCESS_DENIED_TOTAL
from .options import GatewayOptions
from .protocols import AccessCheck, maybe_await

logger = get_logger(__name__)

FORBIDDEN_MESSAGE = "you don't have permission to access this resource"
INVALID_PAYLOAD_MESSAGE = "request payload must be an object"
INVALID_SCOPE_MESSAGE = "scope must be defined and a string"
INVALID_PATH_MESSAGE = "path must stay within the requested box"


def _access_check(kind: AccessKind, options: GatewayOptions) -> AccessCheck:
    if kind is AccessKind.WRITE:
        return options.is_allowed_write
    return options.is_allowed_read


async def authorize(
    kind: AccessKind,
    options: GatewayOptions,
    request: Request,
    scope: str,
    path: str,
) -> bool:
    """Run the read or write predicate for ``scope`` and ``path``."""
    check = _access_check(kind, options)
    return bool(await maybe_await(check(request, scope, path)))


async def require_access(
    kind: AccessKind,
    options: GatewayOptions,
    request: Request,
    scope: str,
    path: str,
) -> None:
    """Raise 403 unless the predicate for ``kind`` allows the request.

    Raises:
        HTTPException(403): If the predicate returns a falsy value.
    """
    if await authorize(kind, options, request, scope, path):
        return

    DOCBOX_ACCESS_DENIED_TOTAL.labels(access=kind.value).inc()
    logger.info("docbox_access_denied", access=kind.value, method=request.method)
    raise HTTPException(
        status_code=403,
        detail={"code": "FORBIDDEN", "message": FORBIDDEN_MESSAGE},
    )


def require_scope(scope: Any) -> str:
    """Validate a scope taken from a payload or path parameter.

    Raises:
        HTTPException(400): If scope is missing, empty, or not a string.
    """
    if scope is None or not isinstance(scope, str) or not scope:
        raise HTTPException(
            status_code=400,
            detail={"code": "INVALID_SCOPE", "message": INVALID_SCOPE_MESSAGE},
        )
    return scope


def require_object_payload(payload: Any) -> dict[str, Any]:
    """Validate that a decoded JSON payload is an object.

    Raises:
        HTTPException(400): For arrays, primitives, or undecodable bodies.
    """
    if not isinstance(payload, dict):
        raise HTTPException(
            status_code=400,
            detail={"code": "INVALID_PAYLOAD", "message": INVALID_PAYLOAD_MESSAGE},
        )
    return payload


def require_box_path(path: str, scope: str) -> str:
    """Validate that a raw forward path addresses ``/box/{scope}`` only.

    Each segment is percent-decoded before checking, so ``..%2F`` and
    ``%2F``-joined segments are caught as well as literal ones.

    Raises:
        HTTPException(400): If the path has a dot segment, or its first
            two segments are not ``box`` and ``scope``.
    """
    decoded = [unquote(segment) for segment in path.lstrip("/").split("/")]
    escapes_box = decoded[:2] != ["box", scope] or any(
        part in (".", "..")
        for segment in decoded
        for part in segment.split("/")
    )
    if escapes_box:
        raise HTTPException(
            status_code=400,
            detail={"code": "INVALID_PATH", "message": INVALID_PATH_MESSAGE},
        )
    return path
