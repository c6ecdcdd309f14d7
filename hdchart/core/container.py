"""
Conteneur d'injection de dépendances et configuration application.

Expose un singleton `container` qui porte la configuration et fabrique, pour chaque requête, un
orchestrateur et des instances de stratégies neuves (aucun état partagé entre requêtes).
"""

from collections.abc import Callable

from hdchart.core.settings import Settings, get_settings
from hdchart.domain.orchestrator import FallbackOrchestrator
from hdchart.domain.services import ChartService
from hdchart.infra.strategies.base import ChartStrategy
from hdchart.infra.strategies.browser import BrowserStrategy
from hdchart.infra.strategies.direct_api import DirectApiStrategy
from hdchart.infra.strategies.form_client import AiohttpFormStrategy, HttpxFormStrategy

STRATEGY_REGISTRY: dict[str, Callable[[Settings], ChartStrategy]] = {
    "direct_api": DirectApiStrategy,
    "browser": BrowserStrategy,
    "httpx_form": HttpxFormStrategy,
    "aiohttp_form": AiohttpFormStrategy,
}


class Container:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        unknown = [n for n in self.settings.STRATEGY_ORDER if n not in STRATEGY_REGISTRY]
        if unknown:
            raise ValueError(f"invalid STRATEGY_ORDER entries: {', '.join(unknown)}")
        self.strategy_order = tuple(self.settings.STRATEGY_ORDER)

    def build_strategies(self) -> list[ChartStrategy]:
        """Instancie les stratégies dans l'ordre de priorité configuré."""
        return [STRATEGY_REGISTRY[name](self.settings) for name in self.strategy_order]

    def build_orchestrator(self) -> FallbackOrchestrator:
        return FallbackOrchestrator(self.build_strategies())

    def chart_service(self) -> ChartService:
        return ChartService(
            self.build_orchestrator,
            request_timeout_s=self.settings.CHART_REQUEST_TIMEOUT_S,
            retry_attempts=self.settings.CHART_RETRY_ATTEMPTS,
            retry_base_delay_s=self.settings.CHART_RETRY_BASE_DELAY_S,
        )


container = Container()
