"""
Endpoints de santé et de description du service.

Expose `/health` (état général et stratégies actives) et `/` (liste des endpoints et exemple).
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from hdchart.api.schemas import BIRTH_EXAMPLE
from hdchart.core.container import container

router = APIRouter(tags=["health"])

SERVICE_VERSION = "1.0.0"


@router.get("/health")
def health():
    """Vérifie la disponibilité de l'API et liste les stratégies configurées."""
    settings = container.settings
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": SERVICE_VERSION,
        "strategies": list(container.strategy_order),
        "direct_api_configured": bool(settings.MAIA_CALCULATOR_TOKEN),
        "captcha_configured": bool(settings.CAPTCHA_API_KEY),
    }


@router.get("/")
def root():
    """Décrit le service et ses endpoints."""
    return {
        "success": True,
        "message": "Human Design chart generation API",
        "version": SERVICE_VERSION,
        "endpoints": {
            "health": "GET /health",
            "metrics": "GET /metrics",
            "generate_chart_post": "POST /api/generate-chart",
            "generate_chart_get": "GET /api/generate-chart",
            "submit_birth_data_post": "POST /api/submit-birth-data",
            "submit_birth_data_get": "GET /api/submit-birth-data",
        },
        "example_request": {
            "method": "POST",
            "url": "/api/generate-chart",
            "body": BIRTH_EXAMPLE,
        },
    }
