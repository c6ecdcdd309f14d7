"""Taxonomie des erreurs d'acquisition de thèmes.

Seules `AllStrategiesExhausted` et `ChartRequestTimeout` remontent jusqu'à la couche HTTP; les
autres sont converties en `Failure` par chaque stratégie et déclenchent la stratégie suivante.
"""

from __future__ import annotations

from collections.abc import Sequence

from hdchart.domain.entities import FailureKind, StrategyAttempt


class ChartError(Exception):
    """Erreur de base du domaine."""

    kind: FailureKind = "unexpected"


class ConfigurationMissing(ChartError):
    """Identifiant requis absent: la stratégie est ignorée, sans appel réseau."""

    kind: FailureKind = "configuration_missing"


class TransportFailure(ChartError):
    """Erreur réseau, HTTP ou navigateur au sein d'une stratégie."""

    kind: FailureKind = "transport_failure"


class CaptchaTimeout(TransportFailure):
    """Le service de captcha n'a pas fourni de jeton dans le nombre d'essais imparti."""


class ExtractionError(ChartError):
    """La réponse est reconnue comme une page d'échec du site externe."""

    kind: FailureKind = "extraction_error"


class EmptyResult(ChartError):
    """La réponse a été analysée mais ne contient aucun champ exploitable."""

    kind: FailureKind = "empty_result"


class AllStrategiesExhausted(ChartError):
    """Toutes les stratégies ont échoué; agrège la cause de chacune."""

    def __init__(self, attempts: Sequence[StrategyAttempt]) -> None:
        self.attempts = tuple(attempts)
        summary = "; ".join(f"{a.strategy}: {a.reason}" for a in self.attempts)
        super().__init__(f"All chart strategies failed ({summary or 'no strategy configured'})")

    def to_details(self) -> dict:
        return {"attempts": [a.to_dict() for a in self.attempts]}


class ChartRequestTimeout(ChartError):
    """Le délai global de la requête entrante a expiré pendant l'orchestration."""

    def __init__(self, timeout_s: float) -> None:
        self.timeout_s = timeout_s
        super().__init__(f"Chart generation exceeded {timeout_s:g}s")
