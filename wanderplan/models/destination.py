"""
Destination catalog models - countries, regions, cities, spots and guides.
"""
from pydantic import BaseModel, Field
from enum import Enum
from typing import Optional


class User(BaseModel):
    """The signed-in traveller."""
    name: str = Field(..., min_length=1)


class Country(BaseModel):
    name: str
    code: str = Field(..., description="Two-letter ISO 3166-1 alpha-2 code.")


class Region(BaseModel):
    """A state, province or region within a country."""
    name: str


class CityInfo(BaseModel):
    """A city as listed in the catalog, before its spots are fetched."""
    name: str
    country: str
    image: str = Field(
        ...,
        description="A direct, publicly accessible, high-resolution image URL."
    )


class TouristSpot(BaseModel):
    id: str = Field(
        ...,
        description="A unique, URL-friendly identifier for the spot (e.g., 'hawa-mahal')."
    )
    name: str
    description: str = Field(
        ...,
        description="A detailed and engaging description of the spot, around 2-3 sentences long."
    )
    image: str = Field(..., description="A direct, high-resolution image URL for the spot.")


class City(CityInfo):
    """Full city details including its famous spots."""
    spots: list[TouristSpot] = Field(
        default_factory=list,
        description="A list of 6 of the most famous tourist spots in the city."
    )

    def find_spot(self, spot_id: str) -> Optional[TouristSpot]:
        return next((spot for spot in self.spots if spot.id == spot_id), None)


class Guide(BaseModel):
    """A local tour guide available for hire."""
    name: str
    specialties: list[str] = Field(
        default_factory=list,
        description="A list of 2-3 short specialties (e.g., 'History', 'Foodie')."
    )
    bio: str = Field(..., description="A short, engaging bio for the guide, 2-3 sentences long.")
    image: str = Field(
        ...,
        description="A direct, public, hotlink-able URL for a portrait-style photo of a person."
    )


class GeoPosition(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    def display(self) -> str:
        """Position rounded for display."""
        return f"{self.latitude:.4f}, {self.longitude:.4f}"


class BrowseLevel(str, Enum):
    """Level of the destination catalog drill-down."""
    COUNTRY = "country"
    STATE = "state"
    CITY = "city"


class DestinationBrowse(BaseModel):
    """Catalog drill-down state for the destination step."""
    level: BrowseLevel = BrowseLevel.COUNTRY
    countries: list[Country] = Field(default_factory=list)
    regions: list[Region] = Field(default_factory=list)
    cities: list[CityInfo] = Field(default_factory=list)
    selected_country: Optional[Country] = None
    selected_region: Optional[Region] = None
