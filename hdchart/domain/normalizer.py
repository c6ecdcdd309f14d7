"""Normalisation des champs pays / ville et déduction du fuseau horaire.

Fonctions pures, sans entrée/sortie: une même entrée donne toujours la même sortie. Aucune
exception n'est levée pour une valeur inconnue; la valeur saisie est renvoyée telle quelle et un
avertissement est journalisé.
"""

from __future__ import annotations

from collections.abc import Mapping

import structlog

from hdchart.domain.entities import NormalizedLocation
from hdchart.domain.location_tables import CITIES, COUNTRIES, COUNTRY_CODES, TIMEZONES

log = structlog.get_logger(__name__)

DEFAULT_TIMEZONE = "UTC"


def resolve_country(country: str) -> str:
    """Retourne le libellé canonique du pays (exact, puis préfixe dans les deux sens)."""
    key = country.strip().lower()
    if not key:
        return country
    if key in COUNTRIES:
        return COUNTRIES[key]
    for candidate, value in COUNTRIES.items():
        if candidate.startswith(key) or key.startswith(candidate):
            return value
    log.warning("location_country_unmapped", country=country)
    return country


def resolve_city(city: str, country: str) -> str:
    """Retourne le libellé d'autocomplétion de la ville pour un pays déjà résolu."""
    key = city.strip().lower()
    table: Mapping[str, str] | None = CITIES.get(country)
    if table and key:
        if key in table:
            return table[key]
        for candidate, value in table.items():
            if key in candidate or candidate in key:
                return value
    log.warning("location_city_unmapped", city=city, country=country)
    return city


def resolve_timezone(city: str, country: str) -> str:
    """Premier fuseau dont la clé apparaît dans la ville, sinon dans le pays; `UTC` par défaut."""
    for name in (city, country):
        lowered = name.lower()
        for key, timezone in TIMEZONES.items():
            if key.lower() in lowered:
                return timezone
    return DEFAULT_TIMEZONE


def normalize(country: str, city: str) -> NormalizedLocation:
    """Résout pays, ville et fuseau attendus par le site externe."""
    resolved_country = resolve_country(country)
    resolved_city = resolve_city(city, resolved_country)
    return NormalizedLocation(
        country=resolved_country,
        city=resolved_city,
        timezone=resolve_timezone(resolved_city, resolved_country),
    )


def country_code(country: str) -> str | None:
    """Code ISO-3166 alpha-2 d'un nom de pays (alias usuels compris)."""
    return COUNTRY_CODES.get(country.strip()) or COUNTRY_CODES.get(resolve_country(country))
