"""Tests pour les routes de génération de thèmes (`/api/generate-chart` et son alias)."""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient

from hdchart.api.schemas import BIRTH_EXAMPLE
from hdchart.app.main import app
from hdchart.app.metrics import CHART_REQUESTS
from hdchart.core.container import container
from hdchart.core.http_constants import (
    HTTP_BAD_GATEWAY,
    HTTP_GATEWAY_TIMEOUT,
    HTTP_NOT_FOUND,
    HTTP_OK,
    HTTP_UNPROCESSABLE_ENTITY,
)
from hdchart.domain.orchestrator import FallbackOrchestrator
from hdchart.domain.services import ChartService
from hdchart.infra.strategies.direct_api import DirectApiStrategy
from hdchart.infra.strategies.form_client import HttpxFormStrategy
from tests.fakes import (
    CHART_PAGE_HTML,
    FORM_PAGE_HTML,
    SITE,
    ScriptedStrategy,
    usable_result,
)

EXPECTED_STRATEGY_COUNT = 4

client = TestClient(app)


def _site_transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, text=FORM_PAGE_HTML)
        return httpx.Response(200, text=CHART_PAGE_HTML)

    return httpx.MockTransport(handler)


def test_generate_chart_falls_back_to_form_client(settings) -> None:
    """Teste le repli de l'API directe (non configurée) vers le client de formulaire."""
    strategies = [
        DirectApiStrategy(settings),
        HttpxFormStrategy(settings, transport=_site_transport()),
    ]
    with patch.object(container, "build_strategies", return_value=strategies):
        r = client.post("/api/generate-chart", json=BIRTH_EXAMPLE)

    assert r.status_code == HTTP_OK
    body = r.json()
    assert body["success"] is True
    assert body["message"] == "Chart generated successfully"
    data = body["data"]
    assert data["strategy"] == "httpx_form"
    assert data["chart_properties"]["type"] == "Generator"
    assert data["chart_properties"]["profile"] == "1/3"
    assert data["design_data"] == ["Sun 34.2", "Earth 20.2"]
    assert data["chart_image_url"] == f"{SITE}/charts/bodygraph/abc123.png"
    assert data["download_data"] == "dGVzdC1jaGFydA=="
    assert data["birth_data"]["city"] == "Peshawar"


@pytest.mark.parametrize("path", ["/api/generate-chart", "/api/submit-birth-data"])
def test_get_with_query_parameters(path: str) -> None:
    """Teste la génération en GET, paramètres de requête, sur les deux chemins."""
    strategies = [ScriptedStrategy("browser", usable_result())]
    params = {**BIRTH_EXAMPLE, "timezone_utc": "true"}
    with patch.object(container, "build_strategies", return_value=strategies):
        r = client.get(path, params=params)

    assert r.status_code == HTTP_OK
    data = r.json()["data"]
    assert data["strategy"] == "browser"
    assert data["birth_data"]["timezone_utc"] is True


def test_all_strategies_failing_returns_502() -> None:
    """Teste la réponse 502 avec une tentative par stratégie, dans l'ordre."""
    names = ["direct_api", "browser", "httpx_form", "aiohttp_form"]
    before = CHART_REQUESTS.labels("exhausted")._value.get()  # type: ignore[attr-defined]
    with patch.object(
        container, "build_strategies", return_value=[ScriptedStrategy(n) for n in names]
    ):
        r = client.post("/api/submit-birth-data", json=BIRTH_EXAMPLE)

    assert r.status_code == HTTP_BAD_GATEWAY
    body = r.json()
    assert body["code"] == "CHART_UNAVAILABLE"
    assert body["message"] == "Failed to generate chart"
    attempts = body["details"]["attempts"]
    assert len(attempts) == EXPECTED_STRATEGY_COUNT
    assert [a["strategy"] for a in attempts] == names
    assert "trace_id" in body
    after = CHART_REQUESTS.labels("exhausted")._value.get()  # type: ignore[attr-defined]
    assert after == before + 1


def test_invalid_input_returns_field_details() -> None:
    """Teste le 422 avec le détail des champs invalides."""
    payload = {**BIRTH_EXAMPLE, "month": 13}
    del payload["name"]
    r = client.post("/api/generate-chart", json=payload)

    assert r.status_code == HTTP_UNPROCESSABLE_ENTITY
    body = r.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert set(body["details"]) == {"month", "name"}


def test_request_timeout_returns_504() -> None:
    """Teste le 504 quand le délai global est dépassé."""

    class SlowStrategy:
        name = "browser"

        async def submit(self, birth):
            await asyncio.sleep(5)

    service = ChartService(lambda: FallbackOrchestrator([SlowStrategy()]), request_timeout_s=0.05)
    with patch.object(container, "chart_service", return_value=service):
        r = client.post("/api/generate-chart", json=BIRTH_EXAMPLE)

    assert r.status_code == HTTP_GATEWAY_TIMEOUT
    assert r.json()["code"] == "GATEWAY_TIMEOUT"
    assert r.json()["details"] == {"timeout_s": 0.05}


def test_unknown_route_uses_error_envelope() -> None:
    """Teste que les 404 utilisent l'enveloppe d'erreur standard."""
    r = client.get("/api/unknown", headers={"X-Trace-ID": "trace-1"})
    assert r.status_code == HTTP_NOT_FOUND
    assert r.json() == {"code": "NOT_FOUND", "message": "Not Found", "trace_id": "trace-1"}
