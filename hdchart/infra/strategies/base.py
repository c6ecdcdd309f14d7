"""Contrat commun des stratégies d'acquisition de thèmes.

Chaque stratégie implémente `_acquire` (le chemin nominal, qui lève en cas de problème) et
`close` (libération idempotente de ses ressources). La méthode `submit` encapsule ce chemin:
- délai maximal propre à la stratégie (`asyncio.wait_for`);
- conversion de toute erreur en `Failure` typée, sans jamais lever;
- libération des ressources sur tous les chemins de sortie;
- journalisation et métriques par tentative.

L'annulation de la tâche (`CancelledError`) n'est pas absorbée: elle se propage après `close`.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

import structlog

from hdchart.app.metrics import STRATEGY_ATTEMPTS, STRATEGY_DURATION
from hdchart.core.settings import Settings
from hdchart.domain.entities import BirthData, ChartResult, Failure, StrategyOutcome, Success
from hdchart.domain.errors import ChartError

log = structlog.get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ChartStrategy(ABC):
    """Stratégie d'acquisition: `submit(birth) -> Success | Failure`."""

    name: str = "strategy"
    # Erreurs de bibliothèque traitées comme des échecs de transport.
    transport_errors: tuple[type[BaseException], ...] = (OSError,)

    def __init__(self, settings: Settings, timeout_s: float, *, sleep: Sleep = asyncio.sleep):
        self.settings = settings
        self.timeout_s = timeout_s
        self._sleep = sleep

    @abstractmethod
    async def _acquire(self, birth: BirthData) -> ChartResult:
        """Effectue les appels réseau et retourne le résultat extrait.

        Raises:
            ChartError: échec typé (configuration, transport, extraction).
        """

    async def close(self) -> None:
        """Libère les ressources de la stratégie; sans effet si déjà libérées."""
        return None

    async def submit(self, birth: BirthData) -> StrategyOutcome:
        """Exécute la stratégie et retourne son issue, sans jamais lever d'exception métier."""
        log.info("strategy_started", strategy=self.name, **birth.log_context())
        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(self._acquire(birth), timeout=self.timeout_s)
        except ChartError as exc:
            outcome: StrategyOutcome = Failure(self.name, str(exc), exc.kind)
        except asyncio.TimeoutError:
            outcome = Failure(
                self.name, f"timed out after {self.timeout_s:g}s", "transport_failure"
            )
        except self.transport_errors as exc:
            outcome = Failure(self.name, f"{type(exc).__name__}: {exc}", "transport_failure")
        except Exception as exc:
            log.exception("strategy_crashed", strategy=self.name)
            outcome = Failure(self.name, f"{type(exc).__name__}: {exc}", "unexpected")
        else:
            outcome = Success(self.name, result)
        finally:
            await self._release()
            STRATEGY_DURATION.labels(self.name).observe(time.perf_counter() - start)

        self._record(outcome)
        return outcome

    async def _pace(self) -> None:
        """Pause de politesse avant chaque appel vers le service externe."""
        if self.settings.REQUEST_DELAY_S > 0:
            await self._sleep(self.settings.REQUEST_DELAY_S)

    async def _release(self) -> None:
        try:
            await self.close()
        except Exception as exc:
            log.warning("strategy_close_failed", strategy=self.name, error=str(exc))

    def _record(self, outcome: StrategyOutcome) -> None:
        if isinstance(outcome, Success):
            label = "success" if outcome.result.is_usable else "empty"
            STRATEGY_ATTEMPTS.labels(self.name, label).inc()
            log.info("strategy_succeeded", strategy=self.name, usable=outcome.result.is_usable)
            return
        STRATEGY_ATTEMPTS.labels(self.name, outcome.kind).inc()
        log.warning(
            "strategy_failed", strategy=self.name, kind=outcome.kind, reason=outcome.reason
        )
