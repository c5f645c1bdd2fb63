from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


@dataclass(frozen=True)
class HttpMetrics:
    request_count: Counter
    request_latency: Histogram


@dataclass(frozen=True)
class FederationMetrics:
    query_count: Counter
    query_latency: Histogram


_HTTP_METRICS: Dict[str, HttpMetrics] = {}
_FEDERATION_METRICS: FederationMetrics | None = None


def _http_metrics(service_name: str) -> HttpMetrics:
    metrics = _HTTP_METRICS.get(service_name)
    if metrics is None:
        metrics = HttpMetrics(
            request_count=Counter(
                f"{service_name}_http_requests_total",
                "Total HTTP requests",
                ["method", "path", "status"],
            ),
            request_latency=Histogram(
                f"{service_name}_http_request_latency_seconds",
                "HTTP request latency in seconds",
                ["method", "path"],
            ),
        )
        _HTTP_METRICS[service_name] = metrics
    return metrics


def federation_metrics() -> FederationMetrics:
    global _FEDERATION_METRICS
    if _FEDERATION_METRICS is None:
        _FEDERATION_METRICS = FederationMetrics(
            query_count=Counter(
                "crossql_federated_queries_total",
                "Queries routed by the federation service",
                ["source", "status"],
            ),
            query_latency=Histogram(
                "crossql_federated_query_latency_seconds",
                "End-to-end latency of routed queries in seconds",
                ["source"],
            ),
        )
    return _FEDERATION_METRICS


def record_query(*, source: str, status: str, duration_s: float) -> None:
    metrics = federation_metrics()
    metrics.query_count.labels(source, status).inc()
    metrics.query_latency.labels(source).observe(duration_s)


def _resolve_path(request: Any) -> str:
    route = getattr(request, "scope", {}).get("route")
    path = getattr(route, "path", None)
    return path or request.url.path


class PrometheusMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, service_name: str) -> None:
        super().__init__(app)
        self._metrics = _http_metrics(service_name)

    async def dispatch(self, request: Any, call_next) -> Any:
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            path = _resolve_path(request)
            duration = time.perf_counter() - start
            self._metrics.request_count.labels(request.method, path, status_code).inc()
            self._metrics.request_latency.labels(request.method, path).observe(duration)


def metrics_response() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
