"""Service de génération de thèmes, avec délai global et réessais du repli.

Les délais entre réessais suivent un recul exponentiel avec une légère gigue aléatoire.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

import structlog

from hdchart.domain.entities import BirthData, Success
from hdchart.domain.errors import AllStrategiesExhausted, ChartRequestTimeout
from hdchart.domain.orchestrator import FallbackOrchestrator

log = structlog.get_logger(__name__)

RETRY_RANDOM_FACTOR = 0.1


class ChartService:
    """Service métier de génération de thèmes Human Design.

    Responsabilités:
    - Construire un orchestrateur neuf (donc des stratégies neuves) pour chaque essai.
    - Borner la durée totale de la requête; l'expiration annule la stratégie en cours.
    - Réessayer l'ensemble du repli si toutes les stratégies ont échoué (`retry_attempts`).
    """

    def __init__(
        self,
        orchestrator_factory: Callable[[], FallbackOrchestrator],
        *,
        request_timeout_s: float,
        retry_attempts: int = 1,
        retry_base_delay_s: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialise le service.

        Paramètres:
        - orchestrator_factory: fabrique d'orchestrateur, appelée à chaque essai.
        - request_timeout_s: durée maximale de la requête entrante.
        - retry_attempts: nombre total d'essais du repli complet (>= 1).
        - retry_base_delay_s: délai de base du backoff exponentiel entre essais.
        """
        self.orchestrator_factory = orchestrator_factory
        self.request_timeout_s = request_timeout_s
        self.retry_attempts = max(1, retry_attempts)
        self.retry_base_delay_s = retry_base_delay_s
        self._sleep = sleep

    async def generate(self, birth: BirthData) -> dict[str, Any]:
        """Produit la charge utile `data` de la réponse HTTP.

        Retour: dict avec `birth_data`, les champs du thème, `strategy` et `generated_at`.

        Raises:
            AllStrategiesExhausted: dernier essai sans résultat exploitable.
            ChartRequestTimeout: délai global dépassé.
        """
        try:
            success = await asyncio.wait_for(
                self._run_with_retry(birth), timeout=self.request_timeout_s
            )
        except asyncio.TimeoutError as exc:
            log.warning("chart_request_timeout", timeout_s=self.request_timeout_s)
            raise ChartRequestTimeout(self.request_timeout_s) from exc
        return {
            "birth_data": birth.public_dump(),
            **success.result.to_response(),
            "strategy": success.strategy,
            "generated_at": datetime.now(timezone.utc).isoformat(),
        }

    async def _run_with_retry(self, birth: BirthData) -> Success:
        attempt = 1
        while True:
            orchestrator = self.orchestrator_factory()
            try:
                return await orchestrator.run(birth)
            except AllStrategiesExhausted:
                if attempt >= self.retry_attempts:
                    raise
                delay = (
                    2 ** (attempt - 1)
                ) * self.retry_base_delay_s + random.random() * RETRY_RANDOM_FACTOR
                log.info("chart_retry_scheduled", attempt=attempt, delay_s=round(delay, 2))
                await self._sleep(delay)
                attempt += 1
