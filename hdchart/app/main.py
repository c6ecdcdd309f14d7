"""
Application principale FastAPI.

Ce module assemble tous les composants de l'application : middlewares,
routes, métriques, gestion des erreurs et configuration de l'API.

Responsabilités du module:
- Initialiser le logging structuré
- Construire l'application FastAPI avec son titre/debug
- Ajouter les middlewares (request id, timing, rate limit, CORS, métriques)
- Monter les routers (santé, thèmes, métriques) et les gestionnaires d'erreurs
"""

from __future__ import annotations

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hdchart.api.routes_charts import router as charts_router
from hdchart.api.routes_health import router as health_router
from hdchart.apigw.errors import register_error_handlers
from hdchart.app.metrics import PrometheusMiddleware, metrics_router
from hdchart.app.middleware_rate_limit import RateLimitMiddleware
from hdchart.core.container import container
from hdchart.core.logging import setup_logging
from hdchart.middlewares.request_id import RequestIDMiddleware
from hdchart.middlewares.timing import TimingMiddleware


def create_app() -> FastAPI:
    """
    Construit et retourne l'application FastAPI prête à l'usage.

    Étapes:
    - Configure le logging structuré (structlog)
    - Lit les paramètres d'exécution
    - Ajoute les middlewares utiles au debug/traçabilité
    - Publie les routes de santé, de thèmes et de métriques
    """
    settings = container.settings
    setup_logging(settings.LOG_LEVEL, json=settings.LOG_JSON)
    app = FastAPI(title=settings.APP_NAME, debug=settings.APP_DEBUG)
    # Le dernier middleware ajouté est le plus externe.
    app.add_middleware(RateLimitMiddleware, settings=settings)
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials="*" not in settings.CORS_ORIGINS,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(TimingMiddleware)
    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(charts_router)
    app.include_router(metrics_router)
    return app


app = create_app()


def run() -> None:
    """Point d'entrée console `hdchart-api`."""
    settings = container.settings
    uvicorn.run(
        "hdchart.app.main:app",
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
