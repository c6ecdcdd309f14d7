"""
Entités du domaine métier.

Ce module définit les modèles de données principaux: données de naissance soumises, lieu
normalisé, résultat canonique d'un thème et issue d'une tentative de stratégie.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

FailureKind = Literal[
    "configuration_missing",
    "transport_failure",
    "extraction_error",
    "empty_result",
    "unexpected",
]


class BirthData(BaseModel):
    """Données de naissance pour la génération d'un thème Human Design."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    day: int = Field(ge=1, le=31)
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1900, le=2100)
    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)
    country: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=255)
    timezone_is_utc: bool = Field(default=False, alias="timezone_utc")

    def public_dump(self) -> dict[str, Any]:
        """Sérialise les données renvoyées à l'appelant (alias de l'API publique)."""
        return self.model_dump(by_alias=True)

    def log_context(self) -> dict[str, Any]:
        """Contexte de log sans l'adresse email."""
        return self.model_dump(by_alias=True, exclude={"email"})


@dataclass(frozen=True)
class NormalizedLocation:
    """Lieu de naissance résolu vers les valeurs attendues par le site externe."""

    country: str
    city: str
    timezone: str


class ChartResult(BaseModel):
    """Résultat canonique d'une extraction, commun à toutes les stratégies."""

    model_config = ConfigDict(frozen=True)

    properties: dict[str, str] = Field(default_factory=dict)
    design_activations: tuple[str, ...] = ()
    personality_activations: tuple[str, ...] = ()
    chart_image_url: str | None = None
    download_token: str | None = None

    @classmethod
    def empty(cls) -> ChartResult:
        return cls()

    @property
    def is_usable(self) -> bool:
        """Vrai si au moins une propriété ou une activation a été extraite."""
        return bool(self.properties or self.design_activations or self.personality_activations)

    def to_response(self) -> dict[str, Any]:
        """Champs exposés par l'API HTTP (noms historiques du service)."""
        return {
            "chart_properties": dict(self.properties),
            "design_data": list(self.design_activations),
            "personality_data": list(self.personality_activations),
            "chart_image_url": self.chart_image_url,
            "download_data": self.download_token,
        }


@dataclass(frozen=True)
class Success:
    """Issue positive d'une stratégie (le résultat peut encore être vide)."""

    strategy: str
    result: ChartResult
    ok: Literal[True] = field(default=True, init=False)


@dataclass(frozen=True)
class Failure:
    """Issue négative d'une stratégie, avec sa cause lisible."""

    strategy: str
    reason: str
    kind: FailureKind = "unexpected"
    ok: Literal[False] = field(default=False, init=False)


StrategyOutcome = Success | Failure


@dataclass(frozen=True)
class StrategyAttempt:
    """Trace d'une tentative non concluante, conservée par l'orchestrateur."""

    strategy: str
    kind: FailureKind
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"strategy": self.strategy, "kind": self.kind, "reason": self.reason}
