"""Capability interfaces supplied by the host application.

The gateway never authenticates callers itself. Instead the host injects
these callables through GatewayOptions; any function (sync or async) with a
matching signature satisfies them.
"""

from __future__ import annotations

import inspect
from typing import Awaitable, Protocol, TypeVar, Union, runtime_checkable

from starlette.requests import Request

from .models import DocboxRequestTenant, DocboxRequestUser

T = TypeVar("T")

MaybeAwaitable = Union[T, Awaitable[T]]


@runtime_checkable
class AccessCheck(Protocol):
    """Read or write authorization predicate for a scoped docbox path."""

    def __call__(
        self, request: Request, scope: str, path: str
    ) -> MaybeAwaitable[bool]: ...


@runtime_checkable
class TenantResolver(Protocol):
    """Resolves the tenant every forwarded request is attributed to."""

    def __call__(self, request: Request) -> MaybeAwaitable[DocboxRequestTenant]: ...


@runtime_checkable
class UserResolver(Protocol):
    """Resolves the (optional) user performing the request."""

    def __call__(
        self, request: Request
    ) -> MaybeAwaitable[DocboxRequestUser | None]: ...


async def maybe_await(value: MaybeAwaitable[T]) -> T:
    """Await ``value`` if it is awaitable, otherwise return it as-is."""
    if inspect.isawaitable(value):
        return await value
    return value


def no_request_user(request: Request) -> None:
    """Default user resolver: no identity enrichment."""
    return None
