"""Docbox gateway: authorizing, identity-enriching proxy routes for docbox."""

__version__ = "0.1.0"

from .classifier import AccessKind, classify_request, is_write_request
from .client import DocboxClient
from .errors import (
    DocboxGatewayError,
    DocboxTimeoutError,
    DocboxUnavailableError,
    GatewayConfigError,
    create_handle_client_error,
    sanitize_error,
)
from .models import DocboxRequestTenant, DocboxRequestUser
from .options import GatewayOptions
from .routes import DocboxGateway, create_docbox_router, create_docbox_routes
from .settings import GatewaySettings
from .app import create_app, create_app_from_env

__all__ = [
    "AccessKind",
    "DocboxClient",
    "DocboxGateway",
    "DocboxGatewayError",
    "DocboxRequestTenant",
    "DocboxRequestUser",
    "DocboxTimeoutError",
    "DocboxUnavailableError",
    "GatewayConfigError",
    "GatewayOptions",
    "GatewaySettings",
    "__version__",
    "classify_request",
    "create_app",
    "create_app_from_env",
    "create_docbox_router",
    "create_docbox_routes",
    "create_handle_client_error",
    "is_write_request",
    "sanitize_error",
]
