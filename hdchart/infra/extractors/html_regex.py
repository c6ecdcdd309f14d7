"""Extraction d'un thème depuis la page HTML de résultats, par expressions régulières seules.

Variante sans analyseur DOM, utilisée par le client aiohttp. Le contrat est celui de
`HtmlDomExtractor`: mêmes sélecteurs de classe, mêmes repères textuels, même résultat canonique.
Les éléments sont délimités en suivant la profondeur des balises ouvrantes/fermantes.
"""

from __future__ import annotations

import html
import re
from collections.abc import Iterator

import structlog

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

_INVISIBLE_BLOCKS = re.compile(
    r"<!--.*?-->|<(script|style|noscript|template|head)\b[^>]*>.*?</\1\s*>",
    re.S | re.I,
)
_TOKENS = re.compile(r"<(/?)([a-zA-Z][a-zA-Z0-9]*)\b[^>]*?(/?)>|([^<]+)", re.S)
_TAGS = re.compile(r"<[^>]+>")
_LIST_ITEM = re.compile(r"<li\b[^>]*>(.*?)</li\s*>", re.S | re.I)
_IMG_SRC = re.compile(r"<img\b[^>]*?\bsrc\s*=\s*[\"']([^\"']+)[\"']", re.S | re.I)
_INPUT = re.compile(r"<input\b[^>]*>", re.S | re.I)
_ATTRIBUTE = re.compile(r"([a-zA-Z_:][-\w:.]*)\s*=\s*(?:\"([^\"]*)\"|'([^']*)'|([^\s>]+))")

_VOID_TAGS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)


def _class_opening(class_name: str) -> re.Pattern[str]:
    return re.compile(
        r"<[a-zA-Z][a-zA-Z0-9]*\b[^>]*?\bclass\s*=\s*[\"'][^\"']*\b"
        + re.escape(class_name)
        + r"\b[^\"']*[\"'][^>]*>",
        re.S | re.I,
    )


_CONTAINER = _class_opening("chart_results_container")
_PROPERTIES = _class_opening("chart_properties")
_BODYGRAPH = _class_opening("chart_bodygraph_container")
_DOWNLOAD = _class_opening("download_btn_container")


def _tokens(fragment: str) -> Iterator[tuple[str, str, bool, str | None]]:
    """Produit `(kind, tag, self_closing, text)` avec kind ∈ {open, close, text}."""
    for match in _TOKENS.finditer(fragment):
        closing, tag, self_closing, text = match.groups()
        if text is not None:
            yield "text", "", False, text
        elif closing:
            yield "close", tag.lower(), False, None
        else:
            yield "open", tag.lower(), bool(self_closing), None


def _opens_element(tag: str, self_closing: bool) -> bool:
    return not self_closing and tag not in _VOID_TAGS


def _element(source: str, opening: re.Pattern[str]) -> str | None:
    """Sous-chaîne de l'élément dont la balise ouvrante correspond, jusqu'à sa fermeture."""
    match = opening.search(source)
    if match is None:
        return None
    depth = 0
    for token in _TOKENS.finditer(source, match.start()):
        closing, tag, self_closing, text = token.groups()
        if text is not None:
            continue
        if closing:
            depth -= 1
        elif _opens_element(tag.lower(), bool(self_closing)):
            depth += 1
        if depth <= 0:
            return source[match.start() : token.end()]
    return source[match.start() :]


def _text(fragment: str) -> str:
    return clean_text(html.unescape(_TAGS.sub(" ", fragment)))


def _attributes(tag: str) -> dict[str, str]:
    attributes: dict[str, str] = {}
    for name, double, single, bare in _ATTRIBUTE.findall(tag):
        attributes[name.lower()] = html.unescape(double or single or bare)
    return attributes


class HtmlRegexExtractor(ChartExtractor):
    """Extracteur HTML par motifs, sans arbre DOM."""

    def __init__(self, site_host: str = DEFAULT_SITE_HOST) -> None:
        self.site_host = site_host

    def extract(self, raw: str | bytes) -> ChartResult:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        page = _INVISIBLE_BLOCKS.sub(" ", raw or "")
        raise_on_failure_page(_text(page))

        container = _element(page, _CONTAINER)
        if container is None:
            log.warning("chart_container_missing", extractor="regex")
            return ChartResult.empty()

        result = ChartResult(
            properties=self._properties(container, page),
            design_activations=self._section(container, "Design"),
            personality_activations=self._section(container, "Personality"),
            chart_image_url=self._image_url(container, page),
            download_token=self._download_token(page),
        )
        log.info(
            "chart_parsed",
            extractor="regex",
            properties_count=len(result.properties),
            design_count=len(result.design_activations),
            personality_count=len(result.personality_activations),
            has_image=bool(result.chart_image_url),
            has_download=bool(result.download_token),
        )
        return result

    @staticmethod
    def _properties(container: str, page: str) -> dict[str, str]:
        block = _element(container, _PROPERTIES) or _element(page, _PROPERTIES)
        if block is None:
            log.warning("chart_properties_missing", extractor="regex")
            return {}
        properties: dict[str, str] = {}
        for item in _LIST_ITEM.findall(block):
            pair = split_property(_text(item))
            if pair:
                properties[pair[0]] = pair[1]
        return properties

    @staticmethod
    def _section(container: str, label: str) -> tuple[str, ...]:
        """Textes des éléments frères qui suivent l'en-tête `label`.

        L'en-tête est l'élément le plus englobant dont le seul texte est `label`: un titre
        enveloppé (`<div><h3>Design</h3></div>`) a pour frères les éléments qui suivent
        l'enveloppe. La collecte s'arrête au prochain repère textuel ou à la fermeture de
        l'élément parent.
        """
        depth = 0
        landmark_depth: int | None = None
        bare = False
        items: list[str] = []
        for kind, tag, self_closing, text in _tokens(container):
            if kind == "open":
                if _opens_element(tag, self_closing):
                    depth += 1
                    bare = False
                continue
            if kind == "close":
                depth -= 1
                if landmark_depth is None:
                    continue
                if bare:
                    # L'élément refermé ne contenait que le repère.
                    landmark_depth = depth + 1
                elif depth < landmark_depth - 1:
                    break
                continue
            value = clean_text(html.unescape(text or ""))
            if not value:
                continue
            if landmark_depth is None:
                if value == label:
                    landmark_depth = depth
                    bare = True
                continue
            bare = False
            if value in LANDMARKS:
                break
            if depth >= landmark_depth:
                items.append(value)
        return tuple(items)

    def _image_url(self, container: str, page: str) -> str | None:
        block = _element(container, _BODYGRAPH) or _element(page, _BODYGRAPH)
        if block is None:
            return None
        match = _IMG_SRC.search(block)
        if match is None:
            return None
        return absolute_url(html.unescape(match.group(1)), self.site_host)

    @staticmethod
    def _download_token(page: str) -> str | None:
        block = _element(page, _DOWNLOAD)
        if block is not None:
            for tag in _INPUT.findall(block):
                attributes = _attributes(tag)
                if attributes.get("name") == "data":
                    return attributes.get("value") or None
        for tag in _INPUT.findall(page):
            attributes = _attributes(tag)
            if attributes.get("name") == "data" and attributes.get("type", "").lower() == "hidden":
                return attributes.get("value") or None
        return None
