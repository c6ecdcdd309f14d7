"""
Métriques Prometheus pour l'application.

Ce module définit les métriques HTTP et les métriques d'acquisition de thèmes (tentatives par
stratégie, durée, issue des requêtes), ainsi que la route `/metrics` et le middleware de mesure.
"""

import time

from fastapi import APIRouter, Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

metrics_router = APIRouter()

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "route", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "Latency of HTTP requests", ["route"]
)

# Acquisition de thèmes
STRATEGY_ATTEMPTS = Counter(
    "chart_strategy_attempts_total",
    "Chart acquisition attempts per strategy and outcome",
    ["strategy", "outcome"],
)
STRATEGY_DURATION = Histogram(
    "chart_strategy_duration_seconds",
    "Duration of a chart acquisition strategy",
    ["strategy"],
    buckets=(0.5, 1, 2.5, 5, 10, 30, 60, 120, 300),
)
CHART_REQUESTS = Counter(
    "chart_requests_total",
    "Chart generation requests by final result",
    ["result"],
)

# Security/quotas metrics
RATE_LIMIT_BLOCKS = Counter(
    "rate_limit_blocks_total",
    "Total requests blocked by rate limiting",
    ["reason"],
)


@metrics_router.get("/metrics")
def metrics():
    """
    Expose les métriques Prometheus au format texte.

    Returns:
        Response: Réponse HTTP contenant les métriques au format Prometheus.
    """
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware Prometheus: comptage des requêtes et latence par route."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response: Response = await call_next(request)
        route = request.scope.get("path", "unknown")
        REQUEST_COUNT.labels(request.method, route, str(response.status_code)).inc()
        REQUEST_LATENCY.labels(route).observe(time.perf_counter() - start)
        return response
