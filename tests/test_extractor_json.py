"""Tests pour l'extracteur de charges utiles JSON (API de calcul et réponses interceptées)."""

from __future__ import annotations

import json

import pytest

from hdchart.domain.errors import ExtractionError
from hdchart.infra.extractors.json_payload import (
    JsonChartExtractor,
    format_activation,
    format_profile,
    looks_like_chart_payload,
)
from tests.fakes import CHART_API_PAYLOAD, SITE


def test_decodes_numeric_codes() -> None:
    """Teste le décodage des codes de type, autorité, profil et définition."""
    result = JsonChartExtractor(SITE).extract(CHART_API_PAYLOAD)
    assert result.properties == {
        "type": "Generator",
        "strategy": "To Respond",
        "not_self_theme": "Frustration",
        "inner_authority": "Sacral",
        "profile": "1/3",
        "definition": "Single Definition",
        "incarnation_cross": "Right Angle Cross of the Sphinx (13/7 | 1/2)",
    }
    assert result.chart_image_url == f"{SITE}/charts/bodygraph/abc123.png"
    assert result.download_token == "dGVzdC1jaGFydA=="


def test_splits_activations_by_type() -> None:
    """Teste la répartition des activations entre design et personnalité."""
    result = JsonChartExtractor(SITE).extract(CHART_API_PAYLOAD)
    assert result.design_activations == ("Sun 34.2 ▲", "Earth 20.2 ▼")
    assert result.personality_activations == ("Sun 10.4 ▲",)


def test_accepts_raw_json_text_and_nested_root() -> None:
    """Teste l'analyse d'un texte JSON dont le thème est sous `data.chart`."""
    raw = json.dumps({"data": {"chart": {"type": 4, "profile": 24}}})
    properties = JsonChartExtractor(SITE).extract(raw).properties
    assert properties["type"] == "Manifesting Generator"
    assert properties["profile"] == "2/4"


def test_separate_design_and_personality_lists() -> None:
    """Teste les activations fournies en deux listes distinctes."""
    payload = {
        "type": 3,
        "design": [{"planet": 4, "gate": 5, "line": 1}],
        "personality": [{"planet": 2, "gate": 7, "line": 6, "fixing": True}],
    }
    result = JsonChartExtractor(SITE).extract(payload)
    assert result.design_activations == ("Moon 5.1 ▼",)
    assert result.personality_activations == ("North Node 7.6 ▲",)


def test_unknown_codes_pass_through() -> None:
    """Teste qu'un code inconnu ou un libellé texte est conservé tel quel."""
    result = JsonChartExtractor(SITE).extract({"type": 99, "authority": "Sacral"})
    assert result.properties["type"] == "99"
    assert result.properties["inner_authority"] == "Sacral"
    assert "strategy" not in result.properties


def test_error_key_raises() -> None:
    """Teste qu'une réponse d'erreur de l'API lève ExtractionError."""
    with pytest.raises(ExtractionError, match="quota exceeded"):
        JsonChartExtractor(SITE).extract({"error": "quota exceeded"})


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", b""])
def test_invalid_json_raises(raw) -> None:
    """Teste qu'un corps non JSON ou non objet lève ExtractionError."""
    with pytest.raises(ExtractionError):
        JsonChartExtractor(SITE).extract(raw)


def test_format_helpers() -> None:
    """Teste le formatage du profil et des activations."""
    assert format_profile(13) == "1/3"
    assert format_profile("5/1") == "5/1"
    assert format_profile(None) is None
    assert format_activation({"planet": 0, "gate": 34, "line": 2, "aligned": True}) == (
        "Sun 34.2 ▲"
    )


def test_looks_like_chart_payload() -> None:
    """Teste la reconnaissance d'une réponse décrivant un thème."""
    assert looks_like_chart_payload(CHART_API_PAYLOAD)
    assert looks_like_chart_payload({"data": {"type": 1, "profile": 13}})
    assert not looks_like_chart_payload({"type": "pageview"})
    assert not looks_like_chart_payload([CHART_API_PAYLOAD])
