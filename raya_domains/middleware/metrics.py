"""
Prometheus Metrics Middleware

Exposes:
  - http_requests_total                 (counter)
  - http_request_duration_seconds       (histogram)
  - domain_resolutions_total            (counter, by source)
  - domain_resolution_duration_seconds  (histogram)
"""

import re
import time

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)
REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)
RESOLUTION_COUNT = Counter(
    "domain_resolutions_total",
    "Host → tenant resolutions by outcome source",
    ["source"],
)
RESOLUTION_DURATION = Histogram(
    "domain_resolution_duration_seconds",
    "Time spent resolving the Host header to a tenant",
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1),
)


def _normalize_path(path: str) -> str:
    """Collapse numeric path segments to prevent cardinality explosion."""
    return re.sub(r"/\d+", "/{id}", path)


def record_resolution(source: str, elapsed_seconds: float) -> None:
    RESOLUTION_COUNT.labels(source=source).inc()
    RESOLUTION_DURATION.observe(elapsed_seconds)


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        endpoint = _normalize_path(request.url.path)
        start = time.perf_counter()
        response = await call_next(request)
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=response.status_code).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(time.perf_counter() - start)
        return response


async def metrics_endpoint(request: Request) -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
