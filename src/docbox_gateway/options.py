"""Registration options for the docbox gateway.

GatewayOptions is the single object accepted by the route builder. It is
read once at setup; nothing on it is mutated per request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from .errors import GatewayConfigError
from .protocols import AccessCheck, TenantResolver, UserResolver, no_request_user
from .settings import DEFAULT_BASE_PATH, GatewaySettings, normalize_base_path

# Headers every docbox call carries unless the caller-curated set overrides them.
DEFAULT_CLIENT_HEADERS: Mapping[str, str] = MappingProxyType({
    "Content-Type": "application/json",
    "Accept": "application/json",
})


def _empty_mapping() -> Mapping[str, Any]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class GatewayOptions:
    """Configuration and capabilities for the docbox routes.

    Attributes:
        docbox_base_url: Base URL of the docbox server.
        is_allowed_write: Write access check ``(request, scope, path)``.
        is_allowed_read: Read access check ``(request, scope, path)``.
        get_request_tenant: Resolves the tenant for a request.
        get_request_user: Resolves the user for a request. Defaults to
            no user.
        base_path: Prefix the ``/box`` routes are served under. Must
            begin with a slash.
        base_route_options: FastAPI route keyword arguments applied to
            every docbox route.
        base_forward_route_options: Route keyword arguments applied only
            to the forwarding routes, merged after ``base_route_options``.
        http_client_config: Extra ``httpx.AsyncClient`` keyword arguments
            (timeout, transport, limits, ...).
    """

    docbox_base_url: str
    is_allowed_write: AccessCheck
    is_allowed_read: AccessCheck
    get_request_tenant: TenantResolver
    get_request_user: UserResolver = no_request_user
    base_path: str = DEFAULT_BASE_PATH
    base_route_options: Mapping[str, Any] = field(default_factory=_empty_mapping)
    base_forward_route_options: Mapping[str, Any] = field(default_factory=_empty_mapping)
    http_client_config: Mapping[str, Any] = field(default_factory=_empty_mapping)

    def __post_init__(self) -> None:
        errors = self.validate()
        if errors:
            raise GatewayConfigError(errors)

    @property
    def normalized_base_path(self) -> str:
        return normalize_base_path(self.base_path)

    @property
    def forward_route_options(self) -> dict[str, Any]:
        return {**self.base_route_options, **self.base_forward_route_options}

    def validate(self) -> list[str]:
        """Return a list of option errors. Empty means valid."""
        errors: list[str] = []
        if not self.docbox_base_url:
            errors.append("docbox_base_url is required")
        if not self.base_path.startswith("/"):
            errors.append(f"base_path must start with '/': {self.base_path!r}")
        for name in ("is_allowed_write", "is_allowed_read", "get_request_tenant"):
            if not callable(getattr(self, name)):
                errors.append(f"{name} must be callable")
        if self.get_request_user is not None and not callable(self.get_request_user):
            errors.append("get_request_user must be callable")
        return errors

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for the shared ``httpx.AsyncClient``.

        The base URL and default headers always come from the gateway,
        overriding anything in ``http_client_config``.
        """
        return {
            **self.http_client_config,
            "base_url": self.docbox_base_url,
            "headers": dict(DEFAULT_CLIENT_HEADERS),
        }

    @classmethod
    def from_settings(
        cls,
        settings: GatewaySettings,
        *,
        is_allowed_write: AccessCheck,
        is_allowed_read: AccessCheck,
        get_request_tenant: TenantResolver,
        get_request_user: UserResolver | None = None,
        base_route_options: Mapping[str, Any] | None = None,
        base_forward_route_options: Mapping[str, Any] | None = None,
        http_client_config: Mapping[str, Any] | None = None,
    ) -> GatewayOptions:
        """Combine environment settings with host-supplied capabilities."""
        client_config: dict[str, Any] = {"timeout": settings.timeout_seconds}
        if http_client_config:
            client_config.update(http_client_config)

        return cls(
            docbox_base_url=settings.docbox_base_url,
            is_allowed_write=is_allowed_write,
            is_allowed_read=is_allowed_read,
            get_request_tenant=get_request_tenant,
            get_request_user=get_request_user or no_request_user,
            base_path=settings.base_path,
            base_route_options=MappingProxyType(dict(base_route_options or {})),
            base_forward_route_options=MappingProxyType(
                dict(base_forward_route_options or {})
            ),
            http_client_config=MappingProxyType(client_config),
        )
