"""
AI Gateway - Structured requests to the generative-AI service.

Every call returns a validated model, or None on any failure. Nothing here
raises to the caller and nothing is retried or cached.
"""
import logging
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError

from .llm_client import get_llm_client
from ..models.destination import City, CityInfo, Country, Guide, Region, TouristSpot
from ..models.itinerary import Itinerary

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


GATEWAY_SYSTEM_PROMPT = """You are the data engine of a travel planning app.
Answer every request with a single valid JSON value that matches the requested schema.
Do not add explanations, markdown or comments."""

IMAGE_REQUIREMENTS = """CRITICAL IMAGE REQUIREMENTS:
- All image URLs MUST be direct links to an image file (e.g., ending in .jpg, .png, .webp).
- The URLs MUST be publicly accessible and allow hotlinking.
- Prioritize using reliable sources like Wikimedia Commons, Pexels, or Unsplash.
- DO NOT provide URLs from stock photo sites with watermarks, pages that require logins, or URLs that lead to a webpage instead of an image file."""


# List replies are wrapped in an object so providers that only accept
# object schemas can still constrain them.
class CountryList(BaseModel):
    countries: list[Country] = Field(default_factory=list)


class RegionList(BaseModel):
    states: list[Region] = Field(default_factory=list)


class CityList(BaseModel):
    cities: list[CityInfo] = Field(default_factory=list)


class GuideList(BaseModel):
    guides: list[Guide] = Field(default_factory=list)


class AIGateway:
    """Typed request/response functions over the LLM client."""

    def __init__(self, llm=None):
        self.llm = llm or get_llm_client()

    async def fetch_countries(self) -> Optional[list[Country]]:
        prompt = (
            "List all countries in the world with their two-letter ISO 3166-1 alpha-2 code, "
            "sorted alphabetically by name."
        )
        result = await self._fetch("country_list", CountryList, prompt)
        return result.countries if result else None

    async def fetch_states(self, country_name: str) -> Optional[list[Region]]:
        prompt = f"List all major states/provinces/regions for {country_name}, sorted alphabetically."
        result = await self._fetch("region_list", RegionList, prompt)
        return result.states if result else None

    async def fetch_top_cities(self, state_name: str, country_name: str) -> Optional[list[CityInfo]]:
        prompt = f"""List the top 10 most popular tourist cities in {state_name}, {country_name}.
For each city, provide its name, country, and a stunning image URL.

{IMAGE_REQUIREMENTS}"""
        result = await self._fetch("city_list", CityList, prompt)
        return result.cities if result else None

    async def fetch_city_detail(self, city_name: str) -> Optional[City]:
        prompt = f"""Generate detailed travel information for "{city_name}".
Include the city's name, country, and a stunning, high-resolution image URL representing the city.
Also, provide a list of its 6 most famous tourist spots.
For each spot, include a unique ID, name, an engaging description, and an image URL.

{IMAGE_REQUIREMENTS}"""
        return await self._fetch("city_detail", City, prompt)

    async def generate_itinerary(
        self,
        city_name: str,
        days: int,
        selected_spots: list[TouristSpot],
        start_date: str
    ) -> Optional[Itinerary]:
        """
        Generate a day-by-day plan.

        Args:
            city_name: Destination city
            days: Trip length, at least 1
            selected_spots: Must-visit spots, possibly empty
            start_date: ISO 8601 date of day 1
        """
        spot_names = ", ".join(spot.name for spot in selected_spots) or "popular attractions"
        prompt = f"""Create a vibrant, culturally-rich {days}-day itinerary for {city_name}, starting {start_date}.
The user's must-visit spots are: {spot_names}.
For each day, create a practical, timed schedule that logically includes the selected spots.
For each evening, suggest a unique, specific local event relevant to the start date.
Return a single JSON object."""
        return await self._fetch("itinerary", Itinerary, prompt)

    async def generate_guides(self, city_name: str) -> Optional[list[Guide]]:
        prompt = f"""You are a travel agency manager. Create a list of 3 diverse, fictional tour guides for hire in {city_name}.
For each guide, provide:
1. A realistic name.
2. 2-3 specialties (e.g., 'Ancient History', 'Street Food Expert').
3. A short, compelling bio (2-3 sentences).
4. An image URL for a realistic, professional-looking portrait photograph of a person.

CRITICAL IMAGE REQUIREMENTS:
- The image URL MUST be a direct link to an image file (e.g., .jpg, .png, .webp).
- The image MUST be a portrait of a person and clearly show their face. DO NOT use objects, animals, or landscapes.
- It MUST be publicly accessible and allow hotlinking from reliable sources like Pexels or Unsplash.
- DO NOT provide URLs that lead to a webpage instead of an image file."""
        result = await self._fetch("guide_list", GuideList, prompt)
        return result.guides if result else None

    async def _fetch(self, name: str, model: Type[ModelT], prompt: str) -> Optional[ModelT]:
        """Run one structured request; any failure becomes None."""
        messages = [
            {"role": "system", "content": GATEWAY_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        schema = {"name": name, "schema": model.model_json_schema(by_alias=True)}

        try:
            data = await self.llm.chat_json(messages, schema=schema)
        except Exception as e:
            logger.error(f"AI gateway request '{name}' failed: {e}")
            return None

        if data is None:
            logger.warning(f"AI gateway request '{name}' returned no JSON")
            return None

        # Some models answer a wrapped list with the bare list
        if isinstance(data, list) and len(model.model_fields) == 1:
            data = {next(iter(model.model_fields)): data}

        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.warning(f"AI gateway response for '{name}' did not match schema: {e.error_count()} error(s)")
            return None


# Global gateway
gateway: Optional[AIGateway] = None


def get_gateway() -> AIGateway:
    """Get or create the global gateway."""
    global gateway
    if gateway is None:
        gateway = AIGateway()
    return gateway
