"""Définition et chargement des paramètres de configuration applicative.

Objectif du module
------------------
- Centraliser les paramètres (env/.env) via Pydantic Settings
- Résoudre le fichier `.env` à utiliser selon la stratégie: ENV_FILE > .env.{APP_ENV} > .env
- Exposer les identifiants optionnels (API de calcul, captcha) sans jamais les rendre obligatoires
"""

import json
import os
from pathlib import Path
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Détermination du fichier .env à utiliser avec priorité:
# 1) ENV_FILE (chemin explicite)
# 2) .env.{APP_ENV} si présent
# 3) .env (défaut)
_cwd = Path.cwd()
_env_file_from_env = os.getenv("ENV_FILE")
if _env_file_from_env:
    _ENV_FILE_PATH = _env_file_from_env
else:
    _app_env = os.getenv("APP_ENV", "dev")
    _candidate_specific = _cwd / f".env.{_app_env}"
    _candidate_default = _cwd / ".env"
    if _candidate_specific.exists():
        _ENV_FILE_PATH = _candidate_specific
    else:
        _ENV_FILE_PATH = _candidate_default

DEFAULT_STRATEGY_ORDER = ["direct_api", "browser", "httpx_form", "aiohttp_form"]


class Settings(BaseSettings):
    """Modèle de configuration chargé depuis l'environnement et .env."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_PATH,
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
    )
    APP_NAME: str = "hdchart-backend"
    APP_ENV: str = "dev"
    APP_DEBUG: bool = True
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 3000
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    CORS_ORIGINS: Annotated[list[str], NoDecode] = ["*"]

    # Site de génération de thèmes (formulaire HTML)
    JOVIAN_ARCHIVE_URL: str = "https://www.jovianarchive.com/Get_Your_Chart"
    JOVIAN_ARCHIVE_HOST: str = "https://www.jovianarchive.com"

    # API de calcul directe (optionnelle)
    MAIA_MECHANICS_API_URL: str = (
        "https://app.maiamechanics.com/api-v2/api/web-calculator/server-side-generation"
    )
    MAIA_CALCULATOR_TOKEN: str | None = None
    MAIA_EV_PAYLOAD: str | None = None

    # Service de résolution de captcha (optionnel)
    CAPTCHA_API_URL: str = "https://2captcha.com"
    CAPTCHA_API_KEY: str | None = None
    CAPTCHA_SITEKEY: str | None = None
    CAPTCHA_POLL_INTERVAL_S: float = 5.0
    CAPTCHA_MAX_ATTEMPTS: int = 12

    # Politesse envers le site externe et délais par stratégie
    REQUEST_DELAY_S: float = 3.0
    DIRECT_API_TIMEOUT_S: float = 60.0
    BROWSER_TIMEOUT_S: float = 150.0
    BROWSER_NAV_TIMEOUT_S: float = 30.0
    BROWSER_HEADLESS: bool = True
    BROWSER_EXECUTABLE_PATH: str | None = None
    HTTPX_TIMEOUT_S: float = 60.0
    HTTPX_MAX_REDIRECTS: int = 5
    HTTPX_VERIFY_TLS: bool = False
    AIOHTTP_TIMEOUT_S: float = 30.0
    AIOHTTP_MAX_REDIRECTS: int = 10
    AIOHTTP_VERIFY_TLS: bool = False

    # Orchestration
    STRATEGY_ORDER: Annotated[list[str], NoDecode] = DEFAULT_STRATEGY_ORDER
    CHART_REQUEST_TIMEOUT_S: float = 300.0
    CHART_RETRY_ATTEMPTS: int = 1
    CHART_RETRY_BASE_DELAY_S: float = 5.0

    # Rate limit (fenêtre fixe par client)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_S: float = 900.0
    RATE_LIMIT_MAX_REQUESTS: int = 50
    # X-Forwarded-For n'est lu que derrière un proxy de confiance.
    RATE_LIMIT_TRUST_FORWARDED: bool = False

    @field_validator("STRATEGY_ORDER", "CORS_ORIGINS", mode="before")
    @classmethod
    def _split_csv(cls, value):
        """Accepte une liste JSON ou une chaîne CSV (`a,b,c`)."""
        if isinstance(value, str):
            if value.strip().startswith("["):
                return json.loads(value)
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("CHART_RETRY_ATTEMPTS", "CAPTCHA_MAX_ATTEMPTS")
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be >= 1")
        return value


def get_settings() -> Settings:
    """Construit et retourne la configuration de l'application."""
    return Settings()
