"""
Prometheus metrics for the listings API.

This module provides:
- HTTP request counter (method, path, status)
- Store operation outcome counter (operation, result)
- Request latency histogram (method, path)

Metrics are stored in-memory using prometheus-client.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST


# =============================================================================
# Metric Definitions
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path", "status"]
)

# operation: list, create, update, delete, delete_all, contact
# result: ok, not_found, invalid, error
store_operations_total = Counter(
    "store_operations_total",
    "Listing and contact operation outcomes",
    labelnames=["operation", "result"]
)

request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"]
)

LISTING_ITEM_PREFIX = "/api/propiedades/"


# =============================================================================
# Helper Functions
# =============================================================================

def normalize_path(path: str) -> str:
    """Collapse per-listing paths so identifiers do not become label values."""
    path = path.split("?")[0]
    if path.startswith(LISTING_ITEM_PREFIX) and len(path) > len(LISTING_ITEM_PREFIX):
        return LISTING_ITEM_PREFIX + "{id}"
    return path


def record_http_request(method: str, path: str, status: int, latency_seconds: float) -> None:
    """
    Record an HTTP request in metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        path: Request path
        status: HTTP status code
        latency_seconds: Request processing time in seconds
    """
    normalized_path = normalize_path(path)

    http_requests_total.labels(
        method=method,
        path=normalized_path,
        status=str(status)
    ).inc()

    request_latency_seconds.labels(
        method=method,
        path=normalized_path
    ).observe(latency_seconds)


def record_store_operation(operation: str, result: str) -> None:
    store_operations_total.labels(operation=operation, result=result).inc()


def get_metrics() -> bytes:
    """Generate Prometheus exposition format metrics."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
