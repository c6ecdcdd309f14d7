"""Interface de base des extracteurs de thèmes et utilitaires partagés.

Un extracteur transforme la réponse brute d'une stratégie (HTML ou JSON) en `ChartResult`. Les
implémentations sont sans état: deux appels sur la même entrée donnent des résultats égaux.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Any
from urllib.parse import urljoin

from hdchart.domain.entities import ChartResult
from hdchart.domain.errors import ExtractionError

DEFAULT_SITE_HOST = "https://www.jovianarchive.com"

FAILURE_PHRASES = ("Oops, we have a problem", "Something went wrong")

LANDMARKS = ("Design", "Personality")

PROPERTY_KEYS = MappingProxyType(
    {
        "type": "type",
        "strategy": "strategy",
        "not-self theme": "not_self_theme",
        "inner authority": "inner_authority",
        "profile": "profile",
        "definition": "definition",
        "incarnation cross": "incarnation_cross",
        "birth date (local)": "birth_date_local",
        "birth date (utc)": "birth_date_utc",
        "birth place": "birth_place",
        "name": "name",
    }
)

_KEY_SEPARATORS = re.compile(r"[\s\-]+")
_KEY_NOISE = re.compile(r"[^a-z0-9_]")
_WHITESPACE = re.compile(r"\s+")


class ChartExtractor(ABC):
    """Interface abstraite pour les extracteurs de réponse."""

    @abstractmethod
    def extract(self, raw: Any) -> ChartResult:
        """Construit un `ChartResult` à partir de la charge utile brute.

        Raises:
            ExtractionError: si la charge utile est une page d'échec connue.
        """
        ...


def normalize_property_key(key: str) -> str:
    """Normalise un libellé de propriété en `lower_snake_case`."""
    lowered = _WHITESPACE.sub(" ", key.strip().lower())
    if lowered in PROPERTY_KEYS:
        return PROPERTY_KEYS[lowered]
    snake = _KEY_SEPARATORS.sub("_", lowered)
    return _KEY_NOISE.sub("", snake).strip("_")


def split_property(text: str) -> tuple[str, str] | None:
    """Découpe `clé: valeur` sur le premier deux-points; None si absent ou clé vide."""
    key, sep, value = text.partition(":")
    if not sep or not key.strip():
        return None
    return normalize_property_key(key), _WHITESPACE.sub(" ", value).strip()


def absolute_url(src: str | None, host: str = DEFAULT_SITE_HOST) -> str | None:
    """Rend absolue une URL relative au site externe."""
    if not src:
        return None
    src = src.strip()
    if src.startswith(("http://", "https://")):
        return src
    return urljoin(host.rstrip("/") + "/", src)


def clean_text(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def raise_on_failure_page(visible_text: str) -> None:
    """Lève `ExtractionError` si le texte visible contient une phrase d'échec connue."""
    lowered = visible_text.lower()
    for phrase in FAILURE_PHRASES:
        if phrase.lower() in lowered:
            raise ExtractionError(f"Chart generation failed: site returned '{phrase}' page")
