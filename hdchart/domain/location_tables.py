"""Tables statiques de correspondance pays / villes / fuseaux horaires.

Les valeurs reproduisent les libellés proposés par l'autocomplétion du formulaire Jovian Archive.
Les tables sont en lecture seule (`MappingProxyType`) et initialisées une seule fois à l'import.
L'ordre d'insertion est significatif: la première correspondance partielle l'emporte.
"""

from types import MappingProxyType

COUNTRIES = MappingProxyType(
    {
        "pakistan": "Pakistan",
        "pak": "Pakistan",
        "usa": "United States",
        "united states": "United States",
        "uk": "United Kingdom",
        "united kingdom": "United Kingdom",
        "canada": "Canada",
        "australia": "Australia",
        "india": "India",
        "china": "China",
        "japan": "Japan",
        "germany": "Germany",
        "france": "France",
        "italy": "Italy",
        "spain": "Spain",
        "brazil": "Brazil",
        "mexico": "Mexico",
        "russia": "Russia",
        "south africa": "South Africa",
        "egypt": "Egypt",
        "turkey": "Turkey",
        "iran": "Iran",
        "iraq": "Iraq",
        "afghanistan": "Afghanistan",
        "bangladesh": "Bangladesh",
        "sri lanka": "Sri Lanka",
        "nepal": "Nepal",
        "bhutan": "Bhutan",
        "maldives": "Maldives",
    }
)

CITIES = MappingProxyType(
    {
        "Pakistan": MappingProxyType(
            {
                "pesh": "Peshawar (Khyber Pakhtunkhwa)",
                "peshawar": "Peshawar (Khyber Pakhtunkhwa)",
                "karachi": "Karachi (Sindh)",
                "lahore": "Lahore (Punjab)",
                "islamabad": "Islamabad (Federal Territory)",
                "rawalpindi": "Rawalpindi (Punjab)",
                "faisalabad": "Faisalabad (Punjab)",
                "multan": "Multan (Punjab)",
                "quetta": "Quetta (Balochistan)",
            }
        ),
        "United States": MappingProxyType(
            {
                "new york": "New York (New York)",
                "los angeles": "Los Angeles (California)",
                "chicago": "Chicago (Illinois)",
                "houston": "Houston (Texas)",
                "phoenix": "Phoenix (Arizona)",
                "philadelphia": "Philadelphia (Pennsylvania)",
                "san antonio": "San Antonio (Texas)",
                "san diego": "San Diego (California)",
                "dallas": "Dallas (Texas)",
                "san jose": "San Jose (California)",
            }
        ),
        "United Kingdom": MappingProxyType(
            {
                "london": "London (England)",
                "birmingham": "Birmingham (England)",
                "manchester": "Manchester (England)",
                "glasgow": "Glasgow (Scotland)",
                "liverpool": "Liverpool (England)",
                "leeds": "Leeds (England)",
                "sheffield": "Sheffield (England)",
                "edinburgh": "Edinburgh (Scotland)",
                "bristol": "Bristol (England)",
                "cardiff": "Cardiff (Wales)",
            }
        ),
        "India": MappingProxyType(
            {
                "mumbai": "Mumbai (Maharashtra)",
                "delhi": "Delhi (Delhi)",
                "bangalore": "Bangalore (Karnataka)",
                "hyderabad": "Hyderabad (Telangana)",
                "ahmedabad": "Ahmedabad (Gujarat)",
                "chennai": "Chennai (Tamil Nadu)",
                "kolkata": "Kolkata (West Bengal)",
                "surat": "Surat (Gujarat)",
                "pune": "Pune (Maharashtra)",
                "jaipur": "Jaipur (Rajasthan)",
                "lucknow": "Lucknow (Uttar Pradesh)",
            }
        ),
    }
)

# Clés comparées en sous-chaîne insensible à la casse: villes d'abord, pays ensuite.
TIMEZONES = MappingProxyType(
    {
        "Peshawar": "Asia/Karachi",
        "Karachi": "Asia/Karachi",
        "Lahore": "Asia/Karachi",
        "Islamabad": "Asia/Karachi",
        "New York": "America/New_York",
        "Los Angeles": "America/Los_Angeles",
        "Chicago": "America/Chicago",
        "London": "Europe/London",
        "Paris": "Europe/Paris",
        "Tokyo": "Asia/Tokyo",
        "Sydney": "Australia/Sydney",
        "Pakistan": "Asia/Karachi",
        "United States": "America/New_York",
        "United Kingdom": "Europe/London",
        "India": "Asia/Kolkata",
    }
)

COUNTRY_CODES = MappingProxyType(
    {
        "Pakistan": "PK",
        "United States": "US",
        "USA": "US",
        "United States of America": "US",
        "United Kingdom": "GB",
        "UK": "GB",
        "Great Britain": "GB",
        "Canada": "CA",
        "Australia": "AU",
        "India": "IN",
        "China": "CN",
        "Japan": "JP",
        "Germany": "DE",
        "France": "FR",
        "Italy": "IT",
        "Spain": "ES",
        "Brazil": "BR",
        "Mexico": "MX",
        "Russia": "RU",
        "South Africa": "ZA",
        "Egypt": "EG",
        "Turkey": "TR",
        "Iran": "IR",
        "Iraq": "IQ",
        "Afghanistan": "AF",
        "Bangladesh": "BD",
        "Sri Lanka": "LK",
        "Nepal": "NP",
        "Bhutan": "BT",
        "Maldives": "MV",
    }
)
