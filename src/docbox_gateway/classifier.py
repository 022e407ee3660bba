"""Read/write classification for box-scoped docbox requests.

Write routes accept POST/PATCH/PUT/DELETE, but some docbox endpoints use
POST for what is semantically a read (searching). Those only need read
access:

  - ``/box/{scope}/search``
  - ``/box/{scope}/file/{file_id}/search``
"""

from __future__ import annotations

from enum import Enum


class AccessKind(str, Enum):
    """Which access check a request must pass."""

    READ = "read"
    WRITE = "write"


def _is_search_path(path: str) -> bool:
    parts = path[1:].split("/") if path.startswith("/") else path.split("/")

    # /box/{scope}/search
    if len(parts) == 3 and parts[0] == "box" and parts[2] == "search":
        return True

    # /box/{scope}/file/{file_id}/search
    if (
        len(parts) == 5
        and parts[0] == "box"
        and parts[2] == "file"
        and parts[4] == "search"
    ):
        return True

    return False


def classify_request(method: str, path: str) -> AccessKind:
    """Classify a docbox request as a read or a write.

    Args:
        method: HTTP method (any case).
        path: Forward path, i.e. the request path with the gateway base
            path removed (``/box/{scope}/...``).

    Returns:
        ``AccessKind.READ`` for GET and POST search endpoints,
        ``AccessKind.WRITE`` otherwise.
    """
    method = method.upper()
    if method == "GET":
        return AccessKind.READ
    if method == "POST" and _is_search_path(path):
        return AccessKind.READ
    return AccessKind.WRITE


def is_write_request(method: str, path: str) -> bool:
    return classify_request(method, path) is AccessKind.WRITE
