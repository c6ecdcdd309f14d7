"""Tests pour la normalisation des lieux de naissance et la déduction du fuseau horaire."""

from __future__ import annotations

import pytest

from hdchart.domain.normalizer import (
    country_code,
    normalize,
    resolve_city,
    resolve_country,
    resolve_timezone,
)


def test_normalize_known_location_is_case_insensitive() -> None:
    """Teste que pays et ville connus sont résolus quelle que soit la casse."""
    location = normalize("PAKISTAN", "peshawar")
    assert location.country == "Pakistan"
    assert location.city == "Peshawar (Khyber Pakhtunkhwa)"
    assert location.timezone == "Asia/Karachi"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("usa", "United States"), ("UK", "United Kingdom"), ("Pak", "Pakistan")],
)
def test_resolve_country_aliases(raw: str, expected: str) -> None:
    """Teste la résolution des alias de pays usuels."""
    assert resolve_country(raw) == expected


def test_resolve_city_partial_match() -> None:
    """Teste qu'une saisie partielle retrouve le libellé d'autocomplétion."""
    assert resolve_city("New York City", "United States") == "New York (New York)"


def test_unknown_location_passes_through_with_utc() -> None:
    """Teste qu'une valeur inconnue est renvoyée telle quelle, sans lever."""
    location = normalize("Zzyzx", "Qwerty")
    assert location.country == "Zzyzx"
    assert location.city == "Qwerty"
    assert location.timezone == "UTC"


def test_timezone_falls_back_to_country() -> None:
    """Teste que le fuseau du pays s'applique quand la ville est inconnue."""
    assert resolve_timezone("Qwerty", "India") == "Asia/Kolkata"


def test_normalize_is_deterministic() -> None:
    """Teste qu'une même entrée produit toujours la même sortie."""
    assert normalize("uk", "london") == normalize("uk", "london")


def test_country_code() -> None:
    """Teste la conversion d'un nom de pays en code ISO."""
    assert country_code("Pakistan") == "PK"
    assert country_code("usa") == "US"
    assert country_code("Zzyzx") is None
