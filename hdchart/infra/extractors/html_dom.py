"""Extraction d'un thème depuis la page HTML de résultats, via un arbre DOM (BeautifulSoup).

Structure attendue de la page Jovian Archive:
- `.chart_results_container` englobe l'ensemble des résultats;
- `.chart_properties ul li` contient des paires `Clé: Valeur`;
- des en-têtes textuels `Design` / `Personality` précèdent les activations;
- `.chart_bodygraph_container img` porte l'image du bodygraph;
- `.download_btn_container form input[name="data"]` porte le jeton de téléchargement.
"""

from __future__ import annotations

import structlog
from bs4 import BeautifulSoup, Comment, Tag

from hdchart.domain.entities import ChartResult
from hdchart.infra.extractors.base import (
    DEFAULT_SITE_HOST,
    LANDMARKS,
    ChartExtractor,
    absolute_url,
    clean_text,
    raise_on_failure_page,
    split_property,
)

log = structlog.get_logger(__name__)

_INVISIBLE_PARENTS = {"script", "style", "noscript", "template", "head", "title"}


def _is_landmark(tag: Tag) -> bool:
    return clean_text(tag.get_text(" ")) in LANDMARKS


class HtmlDomExtractor(ChartExtractor):
    """Extracteur HTML basé sur le DOM, utilisé par le client httpx et le navigateur."""

    def __init__(self, site_host: str = DEFAULT_SITE_HOST, parser: str = "html.parser") -> None:
        self.site_host = site_host
        self.parser = parser

    def extract(self, raw: str | bytes) -> ChartResult:
        """Analyse la page et construit le résultat canonique.

        Args:
            raw: Contenu HTML de la page de résultats.

        Returns:
            ChartResult: Résultat vide si le conteneur de résultats est absent.

        Raises:
            ExtractionError: si la page est une page d'erreur du site.
        """
        soup = BeautifulSoup(raw or "", self.parser)
        raise_on_failure_page(self._visible_text(soup))

        container = soup.select_one(".chart_results_container")
        if container is None:
            log.warning("chart_container_missing", extractor="dom")
            return ChartResult.empty()

        result = ChartResult(
            properties=self._properties(container, soup),
            design_activations=self._section(container, "Design"),
            personality_activations=self._section(container, "Personality"),
            chart_image_url=self._image_url(container, soup),
            download_token=self._download_token(soup),
        )
        log.info(
            "chart_parsed",
            extractor="dom",
            properties_count=len(result.properties),
            design_count=len(result.design_activations),
            personality_count=len(result.personality_activations),
            has_image=bool(result.chart_image_url),
            has_download=bool(result.download_token),
        )
        return result

    @staticmethod
    def _visible_text(soup: BeautifulSoup) -> str:
        parts = []
        for string in soup.find_all(string=True):
            if isinstance(string, Comment):
                continue
            if string.parent is not None and string.parent.name in _INVISIBLE_PARENTS:
                continue
            parts.append(str(string))
        return " ".join(parts)

    @staticmethod
    def _properties(container: Tag, soup: BeautifulSoup) -> dict[str, str]:
        block = container.select_one(".chart_properties") or soup.select_one(".chart_properties")
        if block is None:
            log.warning("chart_properties_missing", extractor="dom")
            return {}
        properties: dict[str, str] = {}
        for item in block.select("li"):
            pair = split_property(clean_text(item.get_text(" ")))
            if pair:
                properties[pair[0]] = pair[1]
        return properties

    @staticmethod
    def _section(container: Tag, label: str) -> tuple[str, ...]:
        """Textes qui suivent l'en-tête `label`, jusqu'au prochain en-tête repère."""
        landmark = container.find(
            lambda tag: isinstance(tag, Tag) and clean_text(tag.get_text(" ")) == label
        )
        if landmark is None:
            return ()
        items: list[str] = []
        for sibling in landmark.find_next_siblings():
            if _is_landmark(sibling) or sibling.find(_is_landmark) is not None:
                break
            for text in sibling.stripped_strings:
                text = clean_text(text)
                if text and text not in LANDMARKS:
                    items.append(text)
        return tuple(items)

    def _image_url(self, container: Tag, soup: BeautifulSoup) -> str | None:
        image = container.select_one(".chart_bodygraph_container img") or soup.select_one(
            ".chart_bodygraph_container img"
        )
        if image is None:
            return None
        return absolute_url(image.get("src"), self.site_host)

    @staticmethod
    def _download_token(soup: BeautifulSoup) -> str | None:
        field = soup.select_one('.download_btn_container form input[name="data"]')
        if field is None:
            field = soup.select_one('input[type="hidden"][name="data"]')
        if field is None:
            return None
        return field.get("value") or None
