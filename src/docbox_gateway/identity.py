"""Tenant/user resolution and the identity headers sent to docbox.

docbox trusts these headers, so they are only ever set from the values the
host resolvers return, never from the caller's own headers.
"""

from __future__ import annotations

from urllib.parse import quote

from starlette.requests import Request

from .models import DocboxRequestTenant, DocboxRequestUser
from .options import GatewayOptions
from .protocols import maybe_await, no_request_user

TENANT_ENV_HEADER = "x-tenant-env"
TENANT_ID_HEADER = "x-tenant-id"
USER_ID_HEADER = "x-user-id"
USER_NAME_HEADER = "x-user-name"
USER_IMAGE_ID_HEADER = "x-user-image-id"

# Characters left unescaped by JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_header_value(value: str) -> str:
    """Percent-encode a user-supplied value for use in a header."""
    return quote(value, safe=_URI_COMPONENT_SAFE)


async def resolve_identity(
    options: GatewayOptions,
    request: Request,
) -> tuple[DocboxRequestTenant, DocboxRequestUser | None]:
    """Resolve the tenant (required) and user (optional) for ``request``.

    Resolved fresh for every request. Resolver failures propagate.
    """
    tenant = await maybe_await(options.get_request_tenant(request))
    get_user = options.get_request_user or no_request_user
    user = await maybe_await(get_user(request))
    return tenant, user


def build_identity_headers(
    tenant: DocboxRequestTenant,
    user: DocboxRequestUser | None,
) -> dict[str, str]:
    """Build the tenant and user headers for a docbox call.

    User headers are only added when the user has an id; name and image
    headers are skipped when empty. The returned dict is new on every call.
    """
    headers: dict[str, str] = {
        TENANT_ENV_HEADER: tenant.env,
        TENANT_ID_HEADER: tenant.id,
    }

    if user is not None and user.id:
        headers[USER_ID_HEADER] = encode_header_value(user.id)

        if user.name:
            headers[USER_NAME_HEADER] = encode_header_value(user.name)

        if user.image_id:
            headers[USER_IMAGE_ID_HEADER] = encode_header_value(user.image_id)

    return headers
