# Schémas Pydantic exposés par l'API (requêtes et réponses).

from typing import Any

from pydantic import BaseModel, ConfigDict

from hdchart.domain.entities import BirthData

BIRTH_EXAMPLE = {
    "name": "John Doe",
    "day": 15,
    "month": 6,
    "year": 1990,
    "hour": 14,
    "minute": 30,
    "country": "Pakistan",
    "city": "Peshawar",
    "timezone_utc": False,
}


class BirthRequest(BirthData):
    """Données de naissance reçues en JSON (POST) ou en paramètres de requête (GET).

    Champs:
    - name, country, city: str non vides (255 caractères max)
    - day [1-31], month [1-12], year [1900-2100], hour [0-23], minute [0-59]
    - email: str optionnel
    - timezone_utc: bool (l'heure saisie est déjà en UTC)
    """

    model_config = ConfigDict(json_schema_extra={"examples": [BIRTH_EXAMPLE]})


class ChartData(BaseModel):
    """Thème généré.

    Champs:
    - birth_data: données de naissance soumises
    - chart_properties: dict (type, strategy, profile, ...)
    - design_data / personality_data: activations textuelles
    - chart_image_url: URL absolue du bodygraph ou None
    - download_data: jeton de téléchargement ou None
    - strategy: nom de la stratégie ayant abouti
    - generated_at: horodatage ISO-8601 (UTC)
    """

    birth_data: dict[str, Any]
    chart_properties: dict[str, str]
    design_data: list[str]
    personality_data: list[str]
    chart_image_url: str | None = None
    download_data: str | None = None
    strategy: str
    generated_at: str


class ChartResponse(BaseModel):
    success: bool = True
    message: str = "Chart generated successfully"
    data: ChartData
