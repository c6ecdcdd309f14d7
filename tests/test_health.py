"""Tests pour les endpoints de santé et de description de l'application."""

from fastapi.testclient import TestClient

from hdchart.app.main import app
from hdchart.core.http_constants import HTTP_OK
from hdchart.core.settings import DEFAULT_STRATEGY_ORDER


def test_health():
    """Teste que l'endpoint de santé retourne un statut OK et les stratégies actives."""
    client = TestClient(app)
    r = client.get("/health")
    assert r.status_code == HTTP_OK
    body = r.json()
    assert body["status"] == "ok"
    assert body["version"] == "1.0.0"
    assert body["strategies"] == DEFAULT_STRATEGY_ORDER
    assert body["captcha_configured"] is False


def test_root_lists_endpoints():
    """Teste que la racine décrit les endpoints et fournit un exemple de requête."""
    client = TestClient(app)
    body = client.get("/").json()
    assert body["success"] is True
    assert body["endpoints"]["generate_chart_post"] == "POST /api/generate-chart"
    assert body["example_request"]["body"]["name"] == "John Doe"


def test_request_id_and_timing_headers():
    """Teste la propagation de l'identifiant de requête et l'en-tête de durée."""
    client = TestClient(app)
    r = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert r.headers["X-Request-ID"] == "req-123"
    assert int(r.headers["X-Process-Time-ms"]) >= 0
    assert client.get("/health").headers["X-Request-ID"]
