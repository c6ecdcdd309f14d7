"""Routes de génération de thèmes Human Design.

Objectif du module
------------------
- Exposer `/api/generate-chart` et son alias historique `/api/submit-birth-data`, en POST (corps
  JSON) comme en GET (paramètres de requête).
- Déléguer au `ChartService`, qui construit un orchestrateur neuf pour chaque requête.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Query

from hdchart.api.schemas import BirthRequest, ChartResponse
from hdchart.app.metrics import CHART_REQUESTS
from hdchart.core.container import container

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["charts"])

CHART_PATHS = ("/generate-chart", "/submit-birth-data")


async def _generate(birth: BirthRequest) -> ChartResponse:
    log.info("chart_request_received", **birth.log_context())
    data = await container.chart_service().generate(birth)
    CHART_REQUESTS.labels("success").inc()
    return ChartResponse(data=data)


async def generate_chart(payload: BirthRequest) -> ChartResponse:
    """Génère un thème à partir d'un corps JSON de données de naissance."""
    return await _generate(payload)


async def generate_chart_from_query(params: Annotated[BirthRequest, Query()]) -> ChartResponse:
    """Génère un thème à partir des paramètres de requête (tests et intégrations simples)."""
    return await _generate(params)


for _path in CHART_PATHS:
    router.add_api_route(_path, generate_chart, methods=["POST"], response_model=ChartResponse)
    router.add_api_route(
        _path, generate_chart_from_query, methods=["GET"], response_model=ChartResponse
    )
