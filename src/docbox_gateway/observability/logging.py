"""Structured logging for the docbox gateway.

Every gateway module logs through ``get_logger``. Records are rendered by
structlog and carry the fields bound for the current request:

- ``request_id``, bound by ``RequestContextMiddleware``.
- ``docbox_scope``, ``docbox_access`` and ``docbox_path``, bound by the
  docbox routes once the forward path is known.

The internal docbox URL is removed from every string field before a record
is rendered.

Usage::

    from docbox_gateway.observability.logging import configure_logging, get_logger

    configure_logging(redact_urls=[settings.docbox_base_url])
    logger = get_logger(__name__)
    logger.info("docbox_forwarded", status=200)
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Iterable

import structlog

from ..classifier import AccessKind

# httpx logs every request line at INFO, including the internal URL.
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")

_configured = False


class RedactDocboxUrls:
    """structlog processor that strips docbox URLs from string fields."""

    def __init__(self, urls: Iterable[str]) -> None:
        self.urls = tuple(url for url in urls if url)

    def __call__(
        self,
        logger: Any,
        method_name: str,
        event_dict: dict[str, Any],
    ) -> dict[str, Any]:
        if not self.urls:
            return event_dict
        for key, value in event_dict.items():
            if isinstance(value, str):
                for url in self.urls:
                    value = value.replace(url, "")
                event_dict[key] = value
        return event_dict


def build_processors(redact_urls: Iterable[str] = ()) -> list:
    """Processor chain shared by structlog and foreign (stdlib) records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        RedactDocboxUrls(redact_urls),
    ]


def configure_logging(
    *,
    level: str = "INFO",
    json_output: bool = True,
    redact_urls: Iterable[str] = (),
) -> None:
    """Configure structlog and route stdlib logging through it.

    Only the first call takes effect.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
        json_output: Emit JSON lines, or human-readable console output.
        redact_urls: Internal URLs removed from every record.
    """
    global _configured
    if _configured:
        return
    _configured = True

    shared_processors = build_processors(redact_urls)
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_docbox_context(*, scope: str, access: AccessKind | str, path: str) -> None:
    """Attach the docbox scope, access kind and forward path to later records."""
    structlog.contextvars.bind_contextvars(
        docbox_scope=scope,
        docbox_access=AccessKind(access).value,
        docbox_path=path,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
