"""Observability for the docbox gateway: structured logging, Prometheus
metrics, and request context middleware.

Quick start::

    from docbox_gateway.observability import RequestContextMiddleware, configure_logging

    configure_logging(redact_urls=[docbox_base_url])
    app.add_middleware(RequestContextMiddleware)
"""

from .logging import bind_docbox_context, configure_logging, get_logger
from .metrics import metrics_text
from .middleware import RequestContextMiddleware

__all__ = [
    "RequestContextMiddleware",
    "bind_docbox_context",
    "configure_logging",
    "get_logger",
    "metrics_text",
]
