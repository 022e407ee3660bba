"""Standalone FastAPI application hosting the docbox gateway.

The gateway is normally embedded: a host application builds a
DocboxGateway and registers it. create_app() is the single entry point for
running it on its own, wiring logging, request-ID middleware, health and
metrics routes, and closing the shared docbox client on shutdown.

Usage:
    app = create_app(options)

    # From environment variables
    app = create_app_from_env(
        is_allowed_write=..., is_allowed_read=..., get_request_tenant=...,
    )
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Mapping

from fastapi import FastAPI
from fastapi.responses import Response

from . import __version__
from .observability.logging import configure_logging, get_logger
from .observability.metrics import metrics_text
from .observability.middleware import RequestContextMiddleware
from .options import GatewayOptions
from .protocols import AccessCheck, TenantResolver, UserResolver
from .routes import DocboxGateway
from .settings import GatewaySettings

logger = get_logger(__name__)


def create_app(
    options: GatewayOptions,
    settings: GatewaySettings | None = None,
) -> FastAPI:
    """Create a FastAPI application serving the docbox routes.

    Args:
        options: Gateway options (upstream address and capabilities).
        settings: Environment settings. Defaults to local settings derived
            from ``options``.

    Returns:
        Configured FastAPI application ready for uvicorn.run().

    Raises:
        ValueError: If settings validation fails.
    """
    if settings is None:
        settings = GatewaySettings(
            docbox_base_url=options.docbox_base_url,
            base_path=options.base_path,
        )

    errors = settings.validate()
    if errors:
        raise ValueError(
            "Docbox gateway settings validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    configure_logging(
        level=settings.log_level,
        json_output=settings.log_format == "json",
        redact_urls=(settings.docbox_base_url, options.docbox_base_url),
    )

    gateway = DocboxGateway(options)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("docbox_gateway_startup", environment=settings.environment)
        try:
            yield
        finally:
            await gateway.aclose()
            logger.info("docbox_gateway_shutdown")

    app = FastAPI(
        title="Docbox Gateway",
        description="Authorizing, identity-enriching proxy in front of docbox",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.gateway = gateway

    # ── Middleware ──────────────────────────────────────────────
    app.add_middleware(RequestContextMiddleware)

    # ── Routes ──────────────────────────────────────────────────

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "environment": settings.environment,
        }

    if settings.metrics_enabled:

        @app.get("/metrics", include_in_schema=False)
        async def metrics():
            body, content_type = metrics_text()
            return Response(content=body, media_type=content_type)

    gateway.register(app)
    return app


def create_app_from_env(
    *,
    is_allowed_write: AccessCheck,
    is_allowed_read: AccessCheck,
    get_request_tenant: TenantResolver,
    get_request_user: UserResolver | None = None,
    http_client_config: Mapping[str, Any] | None = None,
    env: dict[str, str] | None = None,
) -> FastAPI:
    """Build settings from the environment and create the application."""
    settings = GatewaySettings.from_env(env)
    errors = settings.validate()
    if errors:
        raise ValueError(
            "Docbox gateway settings validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    options = GatewayOptions.from_settings(
        settings,
        is_allowed_write=is_allowed_write,
        is_allowed_read=is_allowed_read,
        get_request_tenant=get_request_tenant,
        get_request_user=get_request_user,
        http_client_config=http_client_config,
    )
    return create_app(options, settings)
