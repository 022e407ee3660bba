"""Identity records resolved per request by host-supplied callbacks."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class DocboxRequestTenant:
    """Tenant every docbox call is scoped to.

    Attributes:
        id: ID of the tenant.
        env: Environment the tenant is within.
    """

    id: str
    env: str


@dataclass(frozen=True, slots=True)
class DocboxRequestUser:
    """User performing a request.

    Attributes:
        id: Internal unique user ID (specific to the host application).
        name: Display name of the user.
        image_id: Host-specific identifier of the user's profile image.
    """

    id: str | None = None
    name: str | None = None
    image_id: str | None = None
