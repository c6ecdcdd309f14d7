"""
Tests pour la résolution des variables d'environnement.

Ce module teste le chargement des paramètres depuis un fichier .env personnalisé et le décodage
des listes (ordre des stratégies, origines CORS).
"""

from __future__ import annotations

import importlib
from pathlib import Path

import pytest
from pydantic import ValidationError

from hdchart.core.settings import DEFAULT_STRATEGY_ORDER, Settings

CUSTOM_DELAY_S = 1.5


def test_settings_reads_env_file(tmp_path: Path, monkeypatch) -> None:
    """
    Teste que les settings lisent correctement les fichiers d'environnement.

    Vérifie que les variables définies dans un fichier .env personnalisé (désigné par ENV_FILE)
    sont chargées, y compris une liste CSV.
    """
    env = tmp_path / ".env.custom"
    env.write_text(
        "REQUEST_DELAY_S=1.5\nSTRATEGY_ORDER=httpx_form, aiohttp_form\n"
        "MAIA_CALCULATOR_TOKEN=from-file\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("ENV_FILE", str(env))
    monkeypatch.delenv("REQUEST_DELAY_S", raising=False)

    # Reload settings module to pick up new ENV_FILE
    settings_mod = importlib.import_module("hdchart.core.settings")
    importlib.reload(settings_mod)
    try:
        s = settings_mod.get_settings()
        assert s.REQUEST_DELAY_S == CUSTOM_DELAY_S
        assert s.STRATEGY_ORDER == ["httpx_form", "aiohttp_form"]
        assert s.MAIA_CALCULATOR_TOKEN == "from-file"
    finally:
        monkeypatch.delenv("ENV_FILE")
        importlib.reload(settings_mod)


def test_strategy_order_from_json_env(monkeypatch) -> None:
    """Teste qu'une liste JSON est aussi acceptée."""
    monkeypatch.setenv("STRATEGY_ORDER", '["browser", "direct_api"]')
    assert Settings().STRATEGY_ORDER == ["browser", "direct_api"]


def test_defaults() -> None:
    """Teste les valeurs par défaut: identifiants optionnels, ordre de priorité complet."""
    s = Settings(_env_file=None)
    assert s.STRATEGY_ORDER == DEFAULT_STRATEGY_ORDER
    assert s.CAPTCHA_API_KEY is None
    assert s.RATE_LIMIT_MAX_REQUESTS == 50


def test_retry_attempts_must_be_positive() -> None:
    """Teste que le nombre d'essais est au moins 1."""
    with pytest.raises(ValidationError):
        Settings(CHART_RETRY_ATTEMPTS=0)
