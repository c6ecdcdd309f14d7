"""Stratégies « client de formulaire HTTP »: GET du formulaire, puis POST URL-encodé.

Le protocole (motifs du jeton anti-falsification, correspondance des champs, en-têtes) est défini
une seule fois dans `FormProtocol`; deux transports l'implémentent:
- `HttpxFormStrategy` (httpx), extraction par `HtmlDomExtractor`;
- `AiohttpFormStrategy` (aiohttp), extraction par `HtmlRegexExtractor`.
"""

from __future__ import annotations

import asyncio
import re
from abc import abstractmethod
from collections.abc import Callable
from urllib.parse import urlsplit

import aiohttp
import httpx
import structlog

from hdchart.core.http_constants import BROWSER_HEADERS, FORM_CONTENT_TYPE
from hdchart.core.settings import Settings
from hdchart.domain.entities import BirthData, ChartResult, NormalizedLocation
from hdchart.domain.normalizer import normalize
from hdchart.infra.extractors.base import ChartExtractor
from hdchart.infra.extractors.html_dom import HtmlDomExtractor
from hdchart.infra.extractors.html_regex import HtmlRegexExtractor
from hdchart.infra.strategies.base import ChartStrategy, Sleep

log = structlog.get_logger(__name__)

TOKEN_FIELD = "__RequestVerificationToken"
SEARCH_PATH = "/Search"


class FormProtocol:
    """Protocole du formulaire « Get Your Chart », indépendant du transport."""

    primary_token = re.compile(r'name="__RequestVerificationToken"[^>]*value="([^"]*)"')
    fallback_token = re.compile(r"__RequestVerificationToken[\"']\s*value=[\"']([^\"']*)[\"']")

    def __init__(self, form_url: str, site_host: str):
        self.form_url = form_url
        self.site_host = site_host.rstrip("/")

    def extract_token(self, page: str) -> str:
        """Jeton anti-falsification du formulaire; chaîne vide s'il est introuvable."""
        for pattern in (self.primary_token, self.fallback_token):
            match = pattern.search(page)
            if match:
                return match.group(1)
        log.warning("antiforgery_token_missing", url=self.form_url)
        return ""

    def fields(self, birth: BirthData, location: NormalizedLocation, token: str) -> dict[str, str]:
        return {
            TOKEN_FIELD: token,
            "IsVariableChart": "False",
            "Name": birth.name,
            "Day": str(birth.day),
            "Month": str(birth.month),
            "Year": str(birth.year),
            "Hour": str(birth.hour),
            "Minute": str(birth.minute),
            "Country": location.country,
            "City": location.city,
            "Timezone": location.timezone,
            "IsTimeUTC": "true" if birth.timezone_is_utc else "false",
        }

    def page_headers(self) -> dict[str, str]:
        return {"Referer": f"{self.site_host}/"}

    def post_headers(self) -> dict[str, str]:
        return {
            "Referer": self.form_url,
            "Origin": self.site_host,
            "Content-Type": FORM_CONTENT_TYPE,
        }

    @staticmethod
    def is_search_redirect(url: str) -> bool:
        return SEARCH_PATH.lower() in urlsplit(url).path.lower()


class FormStrategy(ChartStrategy):
    """Déroulé commun: formulaire, jeton, pause, soumission, extraction."""

    def __init__(
        self,
        settings: Settings,
        timeout_s: float,
        extractor: ChartExtractor,
        *,
        sleep: Sleep = asyncio.sleep,
    ):
        super().__init__(settings, timeout_s, sleep=sleep)
        self.protocol = FormProtocol(settings.JOVIAN_ARCHIVE_URL, settings.JOVIAN_ARCHIVE_HOST)
        self.extractor = extractor

    @abstractmethod
    async def _get_page(self) -> str:
        """Retourne le HTML du formulaire."""

    @abstractmethod
    async def _post_form(self, fields: dict[str, str]) -> tuple[str, str]:
        """Soumet le formulaire; retourne `(url finale, html)` après redirections."""

    async def _acquire(self, birth: BirthData) -> ChartResult:
        await self._pace()
        page = await self._get_page()
        token = self.protocol.extract_token(page)

        location = normalize(birth.country, birth.city)
        fields = self.protocol.fields(birth, location, token)
        log.info(
            "form_submitting",
            strategy=self.name,
            country=location.country,
            city=location.city,
            timezone=location.timezone,
            has_token=bool(token),
        )
        await self._pace()
        final_url, body = await self._post_form(fields)
        if self.protocol.is_search_redirect(final_url):
            log.warning("form_redirected_to_search", strategy=self.name, url=final_url)
            return ChartResult.empty()
        return self.extractor.extract(body)


class HttpxFormStrategy(FormStrategy):
    """Client de formulaire httpx (cookies de session, redirections suivies)."""

    name = "httpx_form"
    transport_errors = (httpx.HTTPError, OSError)

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        super().__init__(
            settings,
            settings.HTTPX_TIMEOUT_S,
            HtmlDomExtractor(settings.JOVIAN_ARCHIVE_HOST),
            sleep=sleep,
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _session(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=BROWSER_HEADERS,
                timeout=self.timeout_s,
                follow_redirects=True,
                max_redirects=self.settings.HTTPX_MAX_REDIRECTS,
                verify=self.settings.HTTPX_VERIFY_TLS,
                transport=self._transport,
            )
        return self._client

    async def _get_page(self) -> str:
        response = await self._session().get(
            self.protocol.form_url, headers=self.protocol.page_headers()
        )
        response.raise_for_status()
        return response.text

    async def _post_form(self, fields: dict[str, str]) -> tuple[str, str]:
        response = await self._session().post(
            self.protocol.form_url, data=fields, headers=self.protocol.post_headers()
        )
        response.raise_for_status()
        return str(response.url), response.text

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()


class AiohttpFormStrategy(FormStrategy):
    """Client de formulaire aiohttp, extraction par motifs sans DOM."""

    name = "aiohttp_form"
    transport_errors = (aiohttp.ClientError, OSError)

    def __init__(
        self,
        settings: Settings,
        *,
        session_factory: Callable[..., aiohttp.ClientSession] = aiohttp.ClientSession,
        sleep: Sleep = asyncio.sleep,
    ):
        super().__init__(
            settings,
            settings.AIOHTTP_TIMEOUT_S,
            HtmlRegexExtractor(settings.JOVIAN_ARCHIVE_HOST),
            sleep=sleep,
        )
        self._session_factory = session_factory
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = self._session_factory(
                headers=BROWSER_HEADERS,
                timeout=aiohttp.ClientTimeout(total=self.timeout_s),
            )
        return self._session

    async def _get_page(self) -> str:
        async with self._get_session().get(
            self.protocol.form_url,
            headers=self.protocol.page_headers(),
            max_redirects=self.settings.AIOHTTP_MAX_REDIRECTS,
            ssl=self.settings.AIOHTTP_VERIFY_TLS,
        ) as response:
            response.raise_for_status()
            return await response.text()

    async def _post_form(self, fields: dict[str, str]) -> tuple[str, str]:
        async with self._get_session().post(
            self.protocol.form_url,
            data=fields,
            headers=self.protocol.post_headers(),
            max_redirects=self.settings.AIOHTTP_MAX_REDIRECTS,
            ssl=self.settings.AIOHTTP_VERIFY_TLS,
        ) as response:
            response.raise_for_status()
            return str(response.url), await response.text()

    async def close(self) -> None:
        session, self._session = self._session, None
        if session is not None and not session.closed:
            await session.close()
