"""Stratégie « API directe »: un unique POST JSON vers l'API de calcul Maia Mechanics.

Nécessite `MAIA_CALCULATOR_TOKEN`; sans jeton, la stratégie échoue immédiatement
(`configuration_missing`) sans aucun appel réseau.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from hdchart.core.http_constants import BROWSER_USER_AGENT
from hdchart.core.settings import Settings
from hdchart.domain.entities import BirthData, ChartResult, NormalizedLocation
from hdchart.domain.errors import ChartError, ConfigurationMissing, ExtractionError
from hdchart.domain.normalizer import country_code, normalize
from hdchart.infra.extractors.json_payload import JsonChartExtractor
from hdchart.infra.strategies.base import ChartStrategy, Sleep

log = structlog.get_logger(__name__)

API_ORIGIN = "https://jovianarchive.com"


def _iso(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%S.000Z")


def build_payload(
    birth: BirthData, location: NormalizedLocation, ev_payload: str | None = None
) -> dict[str, Any]:
    """Construit le corps JSON attendu par l'API de calcul.

    Args:
        birth: Données de naissance validées.
        location: Lieu normalisé (pays, ville, fuseau).
        ev_payload: Jeton complémentaire optionnel transmis tel quel.

    Returns:
        dict: Charge utile `docType=rave` avec le bloc `tzData`.

    Raises:
        ChartError: si la date n'existe pas dans le calendrier (ex. 31 février).
    """
    try:
        date = datetime(birth.year, birth.month, birth.day, tzinfo=timezone.utc)
        moment = date.replace(hour=birth.hour, minute=birth.minute)
    except ValueError as exc:
        raise ChartError(f"Invalid birth date: {exc}") from exc

    code = country_code(location.country) or location.country
    data: dict[str, Any] = {
        "verified": True,
        "userConsentGiven": False,
        "receiveChartByEmail": False,
        "type": "rave",
        "city": {"name": location.city, "timezone": location.timezone, "tz": location.timezone},
        "country": {"id": code, "name": location.country, "tz": location.timezone},
        "date": _iso(date),
        "time": _iso(moment),
        "name": birth.name,
    }
    if birth.email:
        data["email"] = birth.email
    if ev_payload:
        data["evPayload"] = ev_payload
    return {
        "docType": "rave",
        "data": data,
        "tzData": {
            "name": birth.name,
            "country": code,
            "city": location.city,
            "timezone": location.timezone,
            "timeInUtc": birth.timezone_is_utc,
            "time": moment.strftime("%Y-%m-%dT%H:%M:%SZ"),
        },
    }


class DirectApiStrategy(ChartStrategy):
    """Appel direct de l'API de calcul (httpx), réponse décodée par `JsonChartExtractor`."""

    name = "direct_api"
    transport_errors = (httpx.HTTPError, OSError)

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        extractor: JsonChartExtractor | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        super().__init__(settings, settings.DIRECT_API_TIMEOUT_S, sleep=sleep)
        self.extractor = extractor or JsonChartExtractor(settings.JOVIAN_ARCHIVE_HOST)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "accept": "application/json, text/plain, */*",
            "content-type": "application/json",
            "calculator-token": token,
            "origin": API_ORIGIN,
            "referer": f"{API_ORIGIN}/",
            "user-agent": BROWSER_USER_AGENT,
        }

    async def _acquire(self, birth: BirthData) -> ChartResult:
        token = self.settings.MAIA_CALCULATOR_TOKEN
        if not token:
            raise ConfigurationMissing("MAIA_CALCULATOR_TOKEN is not set")

        location = normalize(birth.country, birth.city)
        payload = build_payload(birth, location, self.settings.MAIA_EV_PAYLOAD)
        self._client = httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport)

        await self._pace()
        log.info("direct_api_request", url=self.settings.MAIA_MECHANICS_API_URL)
        response = await self._client.post(
            self.settings.MAIA_MECHANICS_API_URL, json=payload, headers=self._headers(token)
        )
        response.raise_for_status()
        try:
            body = response.json()
        except ValueError as exc:
            raise ExtractionError(f"Chart API returned non-JSON body: {exc}") from exc
        return self.extractor.extract(body)

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()
