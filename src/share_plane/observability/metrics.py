"""Prometheus metrics for share-plane.

HTTP metrics are recorded by ``MetricsMiddleware``; the sharing and
collaboration counters are incremented by the managers and the access
auditor. All metrics live on the default registry so the built-in
process collectors are exported alongside them.

Usage::

    from share_plane.observability.metrics import SHARE_ACCESS_TOTAL

    SHARE_ACCESS_TOTAL.labels(resource_type="photo").inc()
"""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# ---------------------------------------------------------------------------
# HTTP request metrics
# ---------------------------------------------------------------------------

HTTP_REQUESTS_TOTAL = Counter(
    "share_plane_http_requests_total",
    "Total HTTP requests by method, path pattern, and status code.",
    labelnames=["method", "path", "status"],
    registry=REGISTRY,
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "share_plane_http_request_duration_seconds",
    "HTTP request latency in seconds.",
    labelnames=["method", "path"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)

HTTP_REQUESTS_IN_FLIGHT = Gauge(
    "share_plane_http_requests_in_flight",
    "Number of HTTP requests currently being processed.",
    registry=REGISTRY,
)

# ---------------------------------------------------------------------------
# Share link metrics
# ---------------------------------------------------------------------------

SHARE_LINKS_CREATED_TOTAL = Counter(
    "share_plane_share_links_created_total",
    "Share links created, by resource type and password protection.",
    labelnames=["resource_type", "password_protected"],
    registry=REGISTRY,
)

SHARE_ACCESS_TOTAL = Counter(
    "share_plane_share_access_total",
    "Successful anonymous share-link accesses.",
    labelnames=["resource_type"],
    registry=REGISTRY,
)

SHARE_ACCESS_DENIED_TOTAL = Counter(
    "share_plane_share_access_denied_total",
    "Rejected anonymous share-link accesses, by reason.",
    labelnames=["reason"],
    registry=REGISTRY,
)

# ---------------------------------------------------------------------------
# Collaboration metrics
# ---------------------------------------------------------------------------

COLLABORATION_INVITES_TOTAL = Counter(
    "share_plane_collaboration_invites_total",
    "Collaboration invite lifecycle events, by outcome.",
    labelnames=["outcome"],
    registry=REGISTRY,
)


def metrics_text() -> tuple[bytes, str]:
    """Generate Prometheus exposition text and content-type header."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
