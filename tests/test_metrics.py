"""Tests pour les métriques Prometheus.

Ce module teste que les métriques HTTP et d'acquisition sont exposées via l'endpoint /metrics.
"""

from fastapi.testclient import TestClient

from hdchart.app.main import app
from hdchart.core.http_constants import HTTP_OK


def test_metrics_exposed():
    """Teste que l'endpoint /metrics expose les métriques Prometheus."""
    c = TestClient(app)
    c.get("/health")
    r = c.get("/metrics")
    assert r.status_code == HTTP_OK
    assert b"http_requests_total" in r.content
    assert b'route="/health"' in r.content
    assert b"chart_strategy_attempts_total" in r.content
    assert b"chart_requests_total" in r.content
    assert b"rate_limit_blocks_total" in r.content
