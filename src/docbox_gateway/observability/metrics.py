"""Prometheus metrics for the docbox gateway.

Usage::

    from docbox_gateway.observability.metrics import DOCBOX_FORWARD_REQUESTS_TOTAL

    DOCBOX_FORWARD_REQUESTS_TOTAL.labels(method="GET", access="read", status="200").inc()
"""

from __future__ import annotations

from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# ---------------------------------------------------------------------------
# Forwarding metrics
# ---------------------------------------------------------------------------

DOCBOX_FORWARD_REQUESTS_TOTAL = Counter(
    "docbox_gateway_forward_requests_total",
    "Requests relayed to docbox by method, access kind, and upstream status.",
    labelnames=["method", "access", "status"],
    registry=REGISTRY,
)

DOCBOX_FORWARD_DURATION_SECONDS = Histogram(
    "docbox_gateway_forward_duration_seconds",
    "Time until docbox returned response headers.",
    labelnames=["method", "access"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
    registry=REGISTRY,
)

# ---------------------------------------------------------------------------
# Rejections and failures
# ---------------------------------------------------------------------------

DOCBOX_ACCESS_DENIED_TOTAL = Counter(
    "docbox_gateway_access_denied_total",
    "Requests rejected by the host access checks.",
    labelnames=["access"],
    registry=REGISTRY,
)

DOCBOX_UPSTREAM_ERRORS_TOTAL = Counter(
    "docbox_gateway_upstream_errors_total",
    "docbox calls that failed before a response could be relayed.",
    labelnames=["code"],
    registry=REGISTRY,
)


def metrics_text() -> tuple[bytes, str]:
    """Generate Prometheus exposition text and content-type header."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
