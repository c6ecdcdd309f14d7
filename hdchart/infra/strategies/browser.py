"""Stratégie « navigateur headless » (Playwright, Chromium).

Déroulé d'une soumission:
1. session navigateur exclusive, avec un intercepteur propre à la tentative qui mémorise chaque
   réponse JSON;
2. navigation vers le formulaire et résolution éventuelle du captcha;
3. détection unique de la mise en page du formulaire, puis remplissage et soumission par la
   variante retenue (`LegacyFormLayout` ou `ShadowFormLayout`); l'attente cesse à la navigation
   ou dès qu'une réponse JSON décrivant un thème est interceptée;
4. lecture du résultat: réponse JSON interceptée si elle décrit un thème, sinon redirection vers
   la recherche (résultat vide), sinon HTML de la page.

La session (contexte, navigateur, pilote) est libérée dans `close`, sur tous les chemins.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, Response, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from hdchart.core.http_constants import BROWSER_HEADERS, BROWSER_USER_AGENT
from hdchart.core.settings import Settings
from hdchart.domain.entities import BirthData, ChartResult, NormalizedLocation
from hdchart.domain.errors import ConfigurationMissing, ExtractionError
from hdchart.domain.normalizer import normalize
from hdchart.infra.captcha import CaptchaSolver
from hdchart.infra.extractors.html_dom import HtmlDomExtractor
from hdchart.infra.extractors.json_payload import JsonChartExtractor, looks_like_chart_payload
from hdchart.infra.strategies.base import ChartStrategy, Sleep

log = structlog.get_logger(__name__)

AUTOCOMPLETE_ITEMS = ".ui-autocomplete .ui-menu-item:visible"
AUTOCOMPLETE_TIMEOUT_MS = 3000
TOKEN_INPUT = 'input[name="__RequestVerificationToken"]'
CAPTCHA_WIDGET = ".g-recaptcha, [data-sitekey]"
VALIDATION_ERRORS = ".field-validation-error, .validation-summary-errors"
LAUNCH_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
)

_SET_VALUE_JS = """([selector, value]) => {
    const field = document.querySelector(selector);
    if (field) { field.value = value; }
}"""
_CAPTCHA_RESPONSE_JS = """(token) => {
    let field = document.getElementById('g-recaptcha-response');
    if (!field) {
        field = document.createElement('textarea');
        field.id = 'g-recaptcha-response';
        field.name = 'g-recaptcha-response';
        field.style.display = 'none';
        (document.querySelector('form') || document.body).appendChild(field);
    }
    field.value = token;
}"""


class ResponseSniffer:
    """Mémorise les corps JSON des réponses reçues par la page.

    Un intercepteur ne sert qu'à une soumission: `BrowserStrategy` en crée un par tentative.
    """

    def __init__(self) -> None:
        self.payloads: list[Any] = []
        self._tasks: set[asyncio.Future] = set()
        self._chart_seen = asyncio.Event()

    def attach(self, page: Page) -> None:
        page.on("response", self._on_response)

    def _on_response(self, response: Response) -> None:
        content_type = (response.headers or {}).get("content-type", "")
        if "json" not in content_type.lower():
            return
        task = asyncio.ensure_future(self._read(response))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _read(self, response: Response) -> None:
        try:
            payload = await response.json()
        except (PlaywrightError, ValueError) as exc:
            log.debug("sniffed_response_unreadable", url=response.url, error=str(exc))
            return
        self.payloads.append(payload)
        if looks_like_chart_payload(payload):
            self._chart_seen.set()

    async def wait_for_chart(self) -> None:
        """Rend la main dès qu'une réponse décrivant un thème a été lue."""
        await self._chart_seen.wait()

    async def drain(self) -> None:
        """Attend la lecture des réponses encore en cours."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    def chart_payload(self) -> Any | None:
        """Première réponse interceptée contenant le vocabulaire d'un thème."""
        for payload in self.payloads:
            if looks_like_chart_payload(payload):
                return payload
        return None


class FormLayout(ABC):
    """Variante de mise en page du formulaire de saisie."""

    name: str = "layout"

    @abstractmethod
    async def matches(self, page: Page) -> bool:
        """Vrai si la page présente cette mise en page."""

    @abstractmethod
    async def fill(self, page: Page, birth: BirthData, location: NormalizedLocation) -> None:
        """Renseigne les champs du formulaire."""

    @abstractmethod
    async def submit(self, page: Page, timeout_ms: float) -> None:
        """Soumet le formulaire et attend la navigation.

        Raises:
            ExtractionError: jeton anti-falsification ou contrôle de soumission absent.
        """


class LegacyFormLayout(FormLayout):
    """Formulaire historique: champs `name=`, champs cachés et autocomplétion jQuery UI."""

    name = "legacy"

    async def matches(self, page: Page) -> bool:
        return await page.query_selector('input[name="Name"]') is not None

    async def fill(self, page: Page, birth: BirthData, location: NormalizedLocation) -> None:
        await page.fill('input[name="Name"]', birth.name)
        await page.fill('input[name="Day"]', str(birth.day))
        if await page.query_selector("#month_name") is not None:
            await page.fill("#month_name", str(birth.month))
        await self._set_value(page, 'input[name="Month"]', str(birth.month))
        await page.fill('input[name="Year"]', str(birth.year))
        await page.fill('input[name="Hour"]', str(birth.hour))
        await page.fill('input[name="Minute"]', str(birth.minute))

        await page.fill("#country_name", location.country)
        if not await self._pick_suggestion(page, location.country):
            await self._set_value(page, 'input[name="Country"]', location.country)
        await page.fill('input[name="City"]', location.city)
        await self._pick_suggestion(page, location.city)
        await self._set_value(page, 'input[name="Timezone"]', location.timezone)

        if birth.timezone_is_utc:
            await page.check('input[name="IsTimeUTC"][type="checkbox"]')

    async def submit(self, page: Page, timeout_ms: float) -> None:
        if await page.query_selector(TOKEN_INPUT) is None:
            raise ExtractionError("Anti-forgery token missing from chart form")
        form = await page.query_selector('form[action="/Get_Your_Chart"]')
        if form is None:
            form = await page.query_selector('form:has(input[name="Name"])')
        if form is None:
            raise ExtractionError("Chart form submit control not found")
        async with page.expect_navigation(wait_until="domcontentloaded", timeout=timeout_ms):
            await form.evaluate("form => form.submit()")

    @staticmethod
    async def _set_value(page: Page, selector: str, value: str) -> None:
        await page.evaluate(_SET_VALUE_JS, [selector, value])

    @staticmethod
    async def _pick_suggestion(page: Page, value: str) -> bool:
        """Choisit la suggestion contenant `value`, sinon la première; False si aucune."""
        try:
            await page.wait_for_selector(AUTOCOMPLETE_ITEMS, timeout=AUTOCOMPLETE_TIMEOUT_MS)
        except PlaywrightTimeoutError:
            log.warning("autocomplete_missing", value=value)
            return False
        items = await page.query_selector_all(AUTOCOMPLETE_ITEMS)
        if not items:
            return False
        for item in items:
            if value.lower() in (await item.inner_text()).lower():
                await item.click()
                return True
        await items[0].click()
        return True


class ShadowFormLayout(FormLayout):
    """Formulaire récent: champs repérés par placeholder, dans des shadow roots ouverts.

    Les sélecteurs CSS de Playwright traversent les shadow roots ouverts.
    """

    name = "shadow"
    placeholders = {
        "name": "Name",
        "day": "Day",
        "month": "Month",
        "year": "Year",
        "hour": "Hour",
        "minute": "Minute",
        "country": "Country",
        "city": "City",
    }

    @staticmethod
    def _field(page: Page, placeholder: str):
        return page.locator(f'input[placeholder*="{placeholder}" i]').first

    async def matches(self, page: Page) -> bool:
        return await self._field(page, self.placeholders["name"]).count() > 0

    async def fill(self, page: Page, birth: BirthData, location: NormalizedLocation) -> None:
        values = {
            "name": birth.name,
            "day": str(birth.day),
            "month": str(birth.month),
            "year": str(birth.year),
            "hour": str(birth.hour),
            "minute": str(birth.minute),
            "country": location.country,
            "city": location.city,
        }
        for key, value in values.items():
            await self._field(page, self.placeholders[key]).fill(value)
        timezone = page.locator('input[name="Timezone"]')
        if await timezone.count() > 0:
            await timezone.first.evaluate("(el, value) => { el.value = value; }", location.timezone)
        if birth.timezone_is_utc:
            utc = page.locator('input[name="IsTimeUTC"][type="checkbox"]')
            if await utc.count() > 0:
                await utc.first.check()

    async def submit(self, page: Page, timeout_ms: float) -> None:
        if await page.locator(TOKEN_INPUT).count() == 0:
            raise ExtractionError("Anti-forgery token missing from chart form")
        button = page.locator('button[type="submit"], input[type="submit"]')
        if await button.count() == 0:
            raise ExtractionError("Chart form submit control not found")
        async with page.expect_navigation(wait_until="domcontentloaded", timeout=timeout_ms):
            await button.first.click()


class BrowserStrategy(ChartStrategy):
    """Automatisation d'un vrai navigateur, pour les cas où les clients HTTP sont refusés."""

    name = "browser"
    transport_errors = (PlaywrightError, OSError)
    layouts: tuple[FormLayout, ...] = (LegacyFormLayout(), ShadowFormLayout())

    def __init__(
        self,
        settings: Settings,
        *,
        captcha: CaptchaSolver | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        super().__init__(settings, settings.BROWSER_TIMEOUT_S, sleep=sleep)
        self.captcha = captcha or CaptchaSolver(settings, sleep=sleep)
        self.html_extractor = HtmlDomExtractor(settings.JOVIAN_ARCHIVE_HOST)
        self.json_extractor = JsonChartExtractor(settings.JOVIAN_ARCHIVE_HOST)
        self._sniffer: ResponseSniffer | None = None
        self._nav_timeout_ms = settings.BROWSER_NAV_TIMEOUT_S * 1000
        self._playwright = None
        self._browser = None
        self._context = None

    async def _open_page(self) -> Page:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.settings.BROWSER_HEADLESS,
            executable_path=self.settings.BROWSER_EXECUTABLE_PATH or None,
            args=list(LAUNCH_ARGS),
        )
        headers = {k: v for k, v in BROWSER_HEADERS.items() if k != "User-Agent"}
        self._context = await self._browser.new_context(
            user_agent=BROWSER_USER_AGENT,
            viewport={"width": 1280, "height": 720},
            extra_http_headers=headers,
        )
        page = await self._context.new_page()
        page.set_default_timeout(self._nav_timeout_ms)
        log.info("browser_launched", headless=self.settings.BROWSER_HEADLESS)
        return page

    async def _acquire(self, birth: BirthData) -> ChartResult:
        page = await self._open_page()
        sniffer = self._sniffer = ResponseSniffer()
        sniffer.attach(page)

        await self._pace()
        await page.goto(
            self.settings.JOVIAN_ARCHIVE_URL,
            wait_until="domcontentloaded",
            timeout=self._nav_timeout_ms,
        )
        await self._solve_captcha(page)

        layout = await self._detect_layout(page)
        location = normalize(birth.country, birth.city)
        await layout.fill(page, birth, location)
        log.info("browser_form_filled", layout=layout.name, city=location.city)

        await self._pace()
        await self._submit(page, layout, sniffer)
        log.info("browser_form_submitted", layout=layout.name, url=page.url)
        return await self._read_result(page, sniffer)

    async def _submit(self, page: Page, layout: FormLayout, sniffer: ResponseSniffer) -> None:
        """Soumet le formulaire; la navigation ou une réponse JSON de thème termine l'attente.

        Une expiration de la navigation est tolérée si un thème a déjà été intercepté.
        """
        navigation = asyncio.ensure_future(layout.submit(page, self._nav_timeout_ms))
        captured = asyncio.ensure_future(sniffer.wait_for_chart())
        try:
            done, _ = await asyncio.wait(
                {navigation, captured}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            navigation.cancel()
            raise
        finally:
            captured.cancel()

        if navigation not in done:
            navigation.cancel()
            await asyncio.gather(navigation, return_exceptions=True)
            log.info("browser_chart_captured_without_navigation", url=page.url)
            return
        try:
            navigation.result()
        except PlaywrightTimeoutError:
            await sniffer.drain()
            if sniffer.chart_payload() is None:
                raise
            log.warning("browser_navigation_timeout_with_chart", url=page.url)

    async def _detect_layout(self, page: Page) -> FormLayout:
        for layout in self.layouts:
            if await layout.matches(page):
                return layout
        raise ExtractionError("Unrecognized chart form layout")

    async def _solve_captcha(self, page: Page) -> None:
        if not self.captcha.enabled:
            return
        widget = await page.query_selector(CAPTCHA_WIDGET)
        if widget is None:
            return
        sitekey = await widget.get_attribute("data-sitekey") or self.settings.CAPTCHA_SITEKEY
        if not sitekey:
            raise ConfigurationMissing("Captcha sitekey not found and CAPTCHA_SITEKEY unset")
        token = await self.captcha.solve(sitekey, page.url)
        await page.evaluate(_CAPTCHA_RESPONSE_JS, token)

    async def _read_result(self, page: Page, sniffer: ResponseSniffer) -> ChartResult:
        await sniffer.drain()
        payload = sniffer.chart_payload()
        if payload is not None:
            log.info("browser_json_payload_captured")
            return self.json_extractor.extract(payload)

        url = page.url
        if "/search" in url.lower():
            log.warning("browser_redirected_to_search", url=url)
            return ChartResult.empty()
        if "get_your_chart" in url.lower():
            errors = await self._validation_errors(page)
            if errors:
                raise ExtractionError(f"Form validation failed: {', '.join(errors)}")
        return self.html_extractor.extract(await page.content())

    @staticmethod
    async def _validation_errors(page: Page) -> list[str]:
        errors = []
        for element in await page.query_selector_all(VALIDATION_ERRORS):
            text = (await element.inner_text()).strip()
            if text:
                errors.append(text)
        return errors

    async def close(self) -> None:
        sniffer, self._sniffer = self._sniffer, None
        if sniffer is not None:
            sniffer.cancel()
        context, self._context = self._context, None
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None
        try:
            if context is not None:
                await context.close()
        finally:
            try:
                if browser is not None:
                    await browser.close()
            finally:
                if playwright is not None:
                    await playwright.stop()
