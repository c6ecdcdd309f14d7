"""Client du service de résolution de captcha (API compatible 2Captcha).

Protocole:
- `in.php` soumet la tâche (reCAPTCHA: `googlekey` + `pageurl`) et renvoie un identifiant;
- `res.php` est interrogé à intervalle fixe jusqu'à obtention du jeton.
Le nombre d'interrogations est borné; au-delà, `CaptchaTimeout` est levée.
"""

from __future__ import annotations

import asyncio

import httpx
import structlog

from hdchart.core.settings import Settings
from hdchart.domain.errors import CaptchaTimeout, ConfigurationMissing, TransportFailure
from hdchart.infra.strategies.base import Sleep

log = structlog.get_logger(__name__)

NOT_READY = "CAPCHA_NOT_READY"


class CaptchaSolver:
    """Soumission puis interrogation bornée d'une tâche de résolution."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.api_url = settings.CAPTCHA_API_URL.rstrip("/")
        self.api_key = settings.CAPTCHA_API_KEY
        self.poll_interval_s = settings.CAPTCHA_POLL_INTERVAL_S
        self.max_attempts = settings.CAPTCHA_MAX_ATTEMPTS
        self._transport = transport
        self._sleep = sleep

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def solve(self, sitekey: str, page_url: str) -> str:
        """Retourne le jeton de réponse du captcha.

        Raises:
            ConfigurationMissing: clé d'API absente.
            TransportFailure: soumission refusée par le service.
            CaptchaTimeout: jeton non disponible après `max_attempts` interrogations.
        """
        if not self.api_key:
            raise ConfigurationMissing("CAPTCHA_API_KEY is not set")
        async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
            task_id = await self._submit(client, sitekey, page_url)
            log.info("captcha_submitted", task_id=task_id)
            for attempt in range(1, self.max_attempts + 1):
                await self._sleep(self.poll_interval_s)
                response = await client.get(
                    f"{self.api_url}/res.php",
                    params={"key": self.api_key, "action": "get", "id": task_id, "json": 1},
                )
                response.raise_for_status()
                body = response.json()
                if body.get("status") == 1:
                    log.info("captcha_solved", task_id=task_id, attempts=attempt)
                    return str(body["request"])
                if body.get("request") != NOT_READY:
                    raise TransportFailure(f"Captcha solving failed: {body.get('request')}")
        raise CaptchaTimeout(
            f"Captcha not solved after {self.max_attempts} polls "
            f"({self.max_attempts * self.poll_interval_s:g}s)"
        )

    async def _submit(self, client: httpx.AsyncClient, sitekey: str, page_url: str) -> str:
        response = await client.post(
            f"{self.api_url}/in.php",
            data={
                "key": self.api_key,
                "method": "userrecaptcha",
                "googlekey": sitekey,
                "pageurl": page_url,
                "json": 1,
            },
        )
        response.raise_for_status()
        body = response.json()
        if body.get("status") != 1:
            raise TransportFailure(f"Captcha submission rejected: {body.get('request')}")
        return str(body["request"])
