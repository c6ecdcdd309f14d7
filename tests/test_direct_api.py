"""Tests pour la stratégie « API directe » (Maia Mechanics)."""

from __future__ import annotations

import json

import httpx
import pytest

from hdchart.domain.entities import BirthData, Failure, Success
from hdchart.domain.errors import ChartError
from hdchart.domain.normalizer import normalize
from hdchart.infra.strategies.direct_api import DirectApiStrategy, build_payload
from tests.fakes import CHART_API_PAYLOAD


def _transport(response: httpx.Response, seen: dict) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return response

    return httpx.MockTransport(handler)


def test_build_payload(birth) -> None:
    """Teste la construction du corps JSON de l'API de calcul."""
    payload = build_payload(birth, normalize(birth.country, birth.city), "ev-1")

    assert payload["docType"] == "rave"
    data = payload["data"]
    assert data["date"] == "1990-06-15T00:00:00.000Z"
    assert data["time"] == "1990-06-15T14:30:00.000Z"
    assert data["country"] == {"id": "PK", "name": "Pakistan", "tz": "Asia/Karachi"}
    assert data["city"]["name"] == "Peshawar (Khyber Pakhtunkhwa)"
    assert data["email"] == "john@example.com"
    assert data["evPayload"] == "ev-1"
    assert payload["tzData"]["time"] == "1990-06-15T14:30:00Z"
    assert payload["tzData"]["timeInUtc"] is False


def test_build_payload_without_optional_fields(birth) -> None:
    """Teste que l'email et le jeton complémentaire sont omis s'ils sont absents."""
    anonymous = birth.model_copy(update={"email": None})
    data = build_payload(anonymous, normalize("Pakistan", "Peshawar"))["data"]
    assert "email" not in data
    assert "evPayload" not in data


def test_build_payload_rejects_impossible_date(birth) -> None:
    """Teste qu'une date absente du calendrier est refusée."""
    invalid = BirthData(**{**birth.public_dump(), "day": 31, "month": 2})
    with pytest.raises(ChartError, match="Invalid birth date"):
        build_payload(invalid, normalize("Pakistan", "Peshawar"))


@pytest.mark.asyncio
async def test_missing_token_skips_network(settings, birth) -> None:
    """Teste qu'un jeton absent échoue immédiatement, sans appel réseau."""
    seen: dict = {}
    strategy = DirectApiStrategy(settings, transport=_transport(httpx.Response(200), seen))

    outcome = await strategy.submit(birth)

    assert isinstance(outcome, Failure)
    assert outcome.kind == "configuration_missing"
    assert "MAIA_CALCULATOR_TOKEN" in outcome.reason
    assert "request" not in seen


@pytest.mark.asyncio
async def test_success_decodes_json(settings, birth) -> None:
    """Teste un appel réussi et les en-têtes transmis à l'API."""
    seen: dict = {}
    configured = settings.model_copy(update={"MAIA_CALCULATOR_TOKEN": "secret"})
    strategy = DirectApiStrategy(
        configured, transport=_transport(httpx.Response(200, json=CHART_API_PAYLOAD), seen)
    )

    outcome = await strategy.submit(birth)

    assert isinstance(outcome, Success)
    assert outcome.result.properties["type"] == "Generator"
    request = seen["request"]
    assert request.headers["calculator-token"] == "secret"
    assert request.headers["origin"] == "https://jovianarchive.com"
    assert json.loads(request.content)["data"]["name"] == "John Doe"
    assert strategy._client is None


@pytest.mark.asyncio
async def test_server_error_is_transport_failure(settings, birth) -> None:
    """Teste qu'une réponse 500 de l'API devient un échec de transport."""
    configured = settings.model_copy(update={"MAIA_CALCULATOR_TOKEN": "secret"})
    strategy = DirectApiStrategy(configured, transport=_transport(httpx.Response(500), {}))

    outcome = await strategy.submit(birth)

    assert isinstance(outcome, Failure)
    assert outcome.kind == "transport_failure"


@pytest.mark.asyncio
async def test_non_json_body_is_extraction_error(settings, birth) -> None:
    """Teste qu'un corps non JSON devient un échec d'extraction."""
    configured = settings.model_copy(update={"MAIA_CALCULATOR_TOKEN": "secret"})
    strategy = DirectApiStrategy(
        configured, transport=_transport(httpx.Response(200, text="<html>maintenance</html>"), {})
    )

    outcome = await strategy.submit(birth)

    assert isinstance(outcome, Failure)
    assert outcome.kind == "extraction_error"
