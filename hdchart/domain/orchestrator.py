"""Orchestrateur de repli entre stratégies d'acquisition.

Les stratégies sont essayées strictement l'une après l'autre, dans l'ordre de priorité fixé à la
construction. La première qui produit un résultat exploitable termine la requête; un `Success`
vide est consigné comme `empty_result` et la stratégie suivante est tentée.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Protocol

import structlog

from hdchart.domain.entities import BirthData, StrategyAttempt, StrategyOutcome, Success
from hdchart.domain.errors import AllStrategiesExhausted, EmptyResult

log = structlog.get_logger(__name__)


class ChartSource(Protocol):
    """Ce que l'orchestrateur attend d'une stratégie."""

    name: str

    async def submit(self, birth: BirthData) -> StrategyOutcome: ...


class OrchestratorState(str, Enum):
    NOT_STARTED = "not_started"
    TRYING = "trying"
    SUCCEEDED = "succeeded"
    EXHAUSTED_FAILED = "exhausted_failed"


class FallbackOrchestrator:
    """Essaie chaque stratégie jusqu'au premier résultat exploitable.

    Une instance sert une seule requête: son état et ses tentatives ne sont pas réinitialisés.
    """

    def __init__(self, strategies: Sequence[ChartSource]):
        self.strategies = tuple(strategies)
        self.state = OrchestratorState.NOT_STARTED
        self.current_index: int | None = None
        self.attempts: list[StrategyAttempt] = []

    async def run(self, birth: BirthData) -> Success:
        """Retourne le premier `Success` exploitable.

        Raises:
            AllStrategiesExhausted: aucune stratégie n'a produit de résultat exploitable; porte
                une tentative par stratégie, dans l'ordre.
        """
        for index, strategy in enumerate(self.strategies):
            self.state = OrchestratorState.TRYING
            self.current_index = index
            outcome = await strategy.submit(birth)
            if isinstance(outcome, Success):
                if outcome.result.is_usable:
                    self.state = OrchestratorState.SUCCEEDED
                    log.info("orchestrator_succeeded", strategy=outcome.strategy, index=index)
                    return outcome
                empty = EmptyResult("Strategy returned an empty chart")
                attempt = StrategyAttempt(outcome.strategy, empty.kind, str(empty))
            else:
                attempt = StrategyAttempt(outcome.strategy, outcome.kind, outcome.reason)
            self.attempts.append(attempt)
            log.info("orchestrator_fallback", strategy=attempt.strategy, kind=attempt.kind)

        self.state = OrchestratorState.EXHAUSTED_FAILED
        log.warning("orchestrator_exhausted", attempts=[a.to_dict() for a in self.attempts])
        raise AllStrategiesExhausted(self.attempts)
