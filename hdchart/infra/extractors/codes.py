"""Tables de décodage des codes numériques renvoyés par l'API de calcul."""

from types import MappingProxyType

TYPES = MappingProxyType(
    {
        1: "Manifestor",
        2: "Generator",
        3: "Projector",
        4: "Manifesting Generator",
        5: "Reflector",
    }
)

AUTHORITIES = MappingProxyType(
    {
        1: "Emotional - Solar Plexus",
        2: "Sacral",
        3: "Splenic",
        4: "Ego Manifested",
        5: "Ego Projected",
        6: "Self-Projected",
        7: "Mental - Environmental",
        8: "Lunar",
    }
)

DEFINITIONS = MappingProxyType(
    {
        0: "No Definition",
        1: "Single Definition",
        2: "Split Definition",
        3: "Triple Split Definition",
        4: "Quadruple Split Definition",
    }
)

# Ordre d'affichage usuel d'un bodygraph.
PLANETS = (
    "Sun",
    "Earth",
    "North Node",
    "South Node",
    "Moon",
    "Mercury",
    "Venus",
    "Mars",
    "Jupiter",
    "Saturn",
    "Uranus",
    "Neptune",
    "Pluto",
)

STRATEGIES = MappingProxyType(
    {
        "Manifestor": "To Inform",
        "Generator": "To Respond",
        "Manifesting Generator": "To Respond",
        "Projector": "Wait for the Invitation",
        "Reflector": "Wait a Lunar Cycle",
    }
)

NOT_SELF_THEMES = MappingProxyType(
    {
        "Manifestor": "Anger",
        "Generator": "Frustration",
        "Manifesting Generator": "Frustration",
        "Projector": "Bitterness",
        "Reflector": "Disappointment",
    }
)

EXALTED = "▲"
DETRIMENT = "▼"
