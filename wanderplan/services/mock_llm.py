"""
Mock LLM Client - Offline stand-in for the AI service.

Answers gateway requests with small deterministic payloads so the wizard can
be driven end to end without an API key.
"""
import re
import json
import logging
from typing import Optional
from datetime import date, timedelta

logger = logging.getLogger(__name__)

IMAGE_BASE = "https://images.example.com"

COUNTRIES = [
    {"name": "France", "code": "FR"},
    {"name": "India", "code": "IN"},
    {"name": "Italy", "code": "IT"},
    {"name": "Japan", "code": "JP"},
    {"name": "Mexico", "code": "MX"},
]

REGIONS = {
    "France": ["Île-de-France", "Normandy", "Provence-Alpes-Côte d'Azur"],
    "India": ["Goa", "Kerala", "Rajasthan"],
    "Italy": ["Lazio", "Tuscany", "Veneto"],
    "Japan": ["Hokkaido", "Kyoto", "Tokyo"],
    "Mexico": ["Oaxaca", "Quintana Roo", "Yucatán"],
}

CITIES = {
    "Île-de-France": ["Paris", "Versailles"],
    "Rajasthan": ["Jaipur", "Udaipur", "Jodhpur"],
    "Tuscany": ["Florence", "Siena", "Pisa"],
    "Kyoto": ["Kyoto", "Uji"],
    "Tokyo": ["Tokyo"],
}

SPOT_THEMES = [
    ("Old Town", "Wander the historic lanes and squares at the heart of {city}."),
    ("Central Market", "Taste local specialties among the busy stalls of {city}'s main market."),
    ("City Museum", "Trace the story of {city} through art and everyday objects."),
    ("Riverside Walk", "A calm promenade with the best sunset views in {city}."),
    ("Grand Temple", "The most celebrated landmark in {city}, busy from early morning."),
    ("Botanical Garden", "Shaded paths and seasonal blooms on the edge of {city}."),
]

GUIDE_NAMES = [
    ("Mara Ellison", ["Ancient History", "Architecture"]),
    ("Kenji Arai", ["Street Food Expert", "Night Markets"]),
    ("Lucía Ortega", ["Art & Museums", "Photography"]),
]


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


class MockLLMClient:
    """Deterministic offline replies keyed by the requested schema name."""

    def __init__(self):
        self.model = "mock-offline"

    async def chat(
        self,
        messages: list[dict],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
        schema: Optional[dict] = None
    ) -> str:
        user_msg = next((m["content"] for m in reversed(messages) if m["role"] == "user"), "")
        name = (schema or {}).get("name", "")

        handlers = {
            "country_list": self._countries,
            "region_list": self._regions,
            "city_list": self._cities,
            "city_detail": self._city_detail,
            "itinerary": self._itinerary,
            "guide_list": self._guides,
        }
        handler = handlers.get(name)
        if handler is None:
            logger.debug(f"Mock LLM has no canned reply for '{name}'")
            return "I can only answer structured trip planning requests."

        return json.dumps(handler(user_msg), ensure_ascii=False)

    def _countries(self, prompt: str) -> dict:
        return {"countries": COUNTRIES}

    def _regions(self, prompt: str) -> dict:
        match = re.search(r"regions for (.+?), sorted", prompt)
        country = match.group(1) if match else ""
        return {"states": [{"name": name} for name in REGIONS.get(country, [])]}

    def _cities(self, prompt: str) -> dict:
        match = re.search(r"tourist cities in (.+?), (.+?)\.", prompt)
        if not match:
            return {"cities": []}
        region, country = match.group(1), match.group(2)
        names = CITIES.get(region, [region])
        return {
            "cities": [
                {"name": name, "country": country, "image": f"{IMAGE_BASE}/{_slug(name)}.jpg"}
                for name in names
            ]
        }

    def _city_detail(self, prompt: str) -> dict:
        match = re.search(r'information for "(.+?)"', prompt)
        city = match.group(1).strip() if match else "Unknown"
        country = next(
            (
                c["name"]
                for c in COUNTRIES
                for region, cities in CITIES.items()
                if city in cities and region in REGIONS.get(c["name"], [])
            ),
            "",
        )
        return {
            "name": city,
            "country": country,
            "image": f"{IMAGE_BASE}/{_slug(city)}.jpg",
            "spots": [
                {
                    "id": _slug(f"{city} {label}"),
                    "name": f"{city} {label}",
                    "description": text.format(city=city),
                    "image": f"{IMAGE_BASE}/{_slug(city)}/{_slug(label)}.jpg",
                }
                for label, text in SPOT_THEMES
            ],
        }

    def _itinerary(self, prompt: str) -> dict:
        match = re.search(r"(\d+)-day itinerary for (.+?), starting (\d{4}-\d{2}-\d{2})", prompt)
        if not match:
            return {}
        days, city, start = int(match.group(1)), match.group(2), date.fromisoformat(match.group(3))

        spots_match = re.search(r"must-visit spots are: (.+?)\.\n", prompt)
        spots = spots_match.group(1).split(", ") if spots_match else []
        if spots == ["popular attractions"]:
            spots = []

        plans = []
        for day in range(1, days + 1):
            morning = spots[(day - 1) % len(spots)] if spots else f"{city} Old Town"
            plans.append({
                "day": day,
                "title": f"Day {day} in {city}",
                "activities": [
                    {"time": "09:00 AM", "location": morning, "description": f"Start the day at {morning}."},
                    {"time": "01:00 PM", "location": f"{city} Central Market", "description": "Lunch on local specialties."},
                    {"time": "04:00 PM", "location": f"{city} Riverside Walk", "description": "Slow afternoon stroll."},
                ],
                "specialEvent": {
                    "name": f"Evening music in {city}",
                    "location": f"{city} Old Town",
                    "details": f"Open-air performance on {(start + timedelta(days=day - 1)).isoformat()} from 7 PM.",
                },
            })

        return {"tripTitle": f"Your Awesome Trip to {city}", "dailyPlans": plans}

    def _guides(self, prompt: str) -> dict:
        match = re.search(r"tour guides for hire in (.+?)\.", prompt)
        city = match.group(1) if match else "the city"
        return {
            "guides": [
                {
                    "name": name,
                    "specialties": specialties,
                    "bio": f"{name} has shown visitors around {city} for years. Expect stories you won't find in a guidebook.",
                    "image": f"{IMAGE_BASE}/guides/{_slug(name)}.jpg",
                }
                for name, specialties in GUIDE_NAMES
            ]
        }
