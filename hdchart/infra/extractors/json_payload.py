"""Extraction d'un thème depuis une charge utile JSON (API de calcul ou réponse interceptée).

Forme acceptée (le thème peut être à la racine ou sous `data`, `chart` ou `data.chart`):

    {
        "type": 2, "authority": 2, "definition": 1, "profile": 13,
        "incarnationCross": "Right Angle Cross of ...",
        "activations": [{"planet": 0, "gate": 34, "line": 2, "activationType": 1, "aligned": true}],
        "chartImageUrl": "https://...", "downloadToken": "..."
    }

Les activations peuvent aussi être fournies en deux listes `design` / `personality`.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import structlog

from hdchart.domain.entities import ChartResult
from hdchart.domain.errors import ExtractionError
from hdchart.infra.extractors import codes
from hdchart.infra.extractors.base import DEFAULT_SITE_HOST, ChartExtractor, absolute_url

log = structlog.get_logger(__name__)

CHART_VOCABULARY = frozenset(
    {"type", "authority", "profile", "definition", "activations", "design", "personality"}
)
_NESTED_ROOTS = (("data",), ("chart",), ("data", "chart"))


def _lookup(table: Mapping[int, str], code: Any) -> str | None:
    """Libellé d'un code; une chaîne non numérique est déjà un libellé."""
    if code is None or code == "":
        return None
    try:
        return table.get(int(code), str(code))
    except (TypeError, ValueError):
        return str(code)


def format_profile(code: Any) -> str | None:
    """`13` → `1/3`; une valeur déjà formatée est renvoyée telle quelle."""
    if code is None or code == "":
        return None
    try:
        value = int(code)
    except (TypeError, ValueError):
        return str(code)
    return f"{value // 10}/{value % 10}"


def _planet(value: Any) -> str:
    if isinstance(value, int) and 0 <= value < len(codes.PLANETS):
        return codes.PLANETS[value]
    return str(value)


def format_activation(activation: Mapping[str, Any]) -> str:
    """Rend une activation sous la forme `Sun 34.2 ▲`."""
    planet = _planet(activation.get("planet"))
    aligned = activation.get("aligned", activation.get("fixing"))
    arrow = codes.EXALTED if aligned else codes.DETRIMENT
    return f"{planet} {activation.get('gate')}.{activation.get('line')} {arrow}"


def _is_design(activation: Mapping[str, Any]) -> bool:
    if "activationType" in activation:
        return activation.get("activationType") == 1
    return bool(activation.get("isDesign"))


def _chart_root(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    if CHART_VOCABULARY & payload.keys():
        return payload
    for path in _NESTED_ROOTS:
        node: Any = payload
        for key in path:
            node = node.get(key) if isinstance(node, Mapping) else None
        if isinstance(node, Mapping) and CHART_VOCABULARY & node.keys():
            return node
    return payload


def looks_like_chart_payload(payload: Any) -> bool:
    """Vrai si la charge utile JSON contient au moins deux termes du vocabulaire d'un thème."""
    if not isinstance(payload, Mapping):
        return False
    return len(CHART_VOCABULARY & _chart_root(payload).keys()) >= 2


class JsonChartExtractor(ChartExtractor):
    """Décode les codes numériques via des tables fixes et produit le résultat canonique."""

    def __init__(self, site_host: str = DEFAULT_SITE_HOST) -> None:
        self.site_host = site_host

    def extract(self, raw: str | bytes | Mapping[str, Any]) -> ChartResult:
        payload = self._load(raw)
        if payload.get("error"):
            raise ExtractionError(f"Chart API returned an error: {payload['error']}")

        chart = _chart_root(payload)
        design, personality = self._activations(chart)
        result = ChartResult(
            properties=self._properties(chart),
            design_activations=design,
            personality_activations=personality,
            chart_image_url=absolute_url(
                chart.get("chartImageUrl") or chart.get("imageUrl"), self.site_host
            ),
            download_token=self._download_token(chart),
        )
        log.info(
            "chart_parsed",
            extractor="json",
            properties_count=len(result.properties),
            design_count=len(result.design_activations),
            personality_count=len(result.personality_activations),
        )
        return result

    @staticmethod
    def _load(raw: str | bytes | Mapping[str, Any]) -> Mapping[str, Any]:
        if isinstance(raw, Mapping):
            return raw
        try:
            payload = json.loads(raw or "")
        except (TypeError, ValueError) as exc:
            raise ExtractionError(f"Invalid JSON chart payload: {exc}") from exc
        if not isinstance(payload, Mapping):
            raise ExtractionError("Invalid JSON chart payload: expected an object")
        return payload

    @staticmethod
    def _properties(chart: Mapping[str, Any]) -> dict[str, str]:
        chart_type = _lookup(codes.TYPES, chart.get("type"))
        candidates = {
            "type": chart_type,
            "strategy": codes.STRATEGIES.get(chart_type or ""),
            "not_self_theme": codes.NOT_SELF_THEMES.get(chart_type or ""),
            "inner_authority": _lookup(codes.AUTHORITIES, chart.get("authority")),
            "profile": format_profile(chart.get("profile")),
            "definition": _lookup(codes.DEFINITIONS, chart.get("definition")),
            "incarnation_cross": chart.get("incarnationCross") or None,
        }
        return {key: str(value) for key, value in candidates.items() if value is not None}

    @staticmethod
    def _download_token(chart: Mapping[str, Any]) -> str | None:
        token = chart.get("downloadToken") or chart.get("data")
        return token if isinstance(token, str) and token else None

    @staticmethod
    def _activations(chart: Mapping[str, Any]) -> tuple[tuple[str, ...], tuple[str, ...]]:
        design: list[str] = []
        personality: list[str] = []
        for activation in chart.get("activations") or ():
            if not isinstance(activation, Mapping):
                continue
            bucket = design if _is_design(activation) else personality
            bucket.append(format_activation(activation))
        for key, bucket in (("design", design), ("personality", personality)):
            for activation in chart.get(key) or ():
                if isinstance(activation, Mapping):
                    bucket.append(format_activation(activation))
        return tuple(design), tuple(personality)
