"""Configuration de test pour pytest avec gestion des chemins.

Ce module ajoute la racine du projet au sys.path, neutralise les délais de politesse et la
limitation de débit pour l'application partagée, et fournit les fixtures communes (paramètres,
données de naissance).
"""

import os
import sys

import pytest

# Ensure project root is on sys.path so that
# imports like `from hdchart...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Lus à l'import de hdchart.app.main (conteneur singleton).
os.environ.setdefault("REQUEST_DELAY_S", "0")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from hdchart.core.settings import Settings  # noqa: E402
from hdchart.domain.entities import BirthData  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    """Paramètres de test: aucun délai, aucun identifiant externe."""
    return Settings(
        REQUEST_DELAY_S=0,
        MAIA_CALCULATOR_TOKEN=None,
        CAPTCHA_API_KEY=None,
        CAPTCHA_SITEKEY=None,
        CHART_RETRY_ATTEMPTS=1,
        RATE_LIMIT_ENABLED=False,
    )


@pytest.fixture
def birth() -> BirthData:
    """Données de naissance de référence (John Doe, Peshawar)."""
    return BirthData(
        name="John Doe",
        email="john@example.com",
        day=15,
        month=6,
        year=1990,
        hour=14,
        minute=30,
        country="Pakistan",
        city="Peshawar",
    )
