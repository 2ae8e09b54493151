"""Data models for the trip wizard."""
from .destination import (
    BrowseLevel,
    City,
    CityInfo,
    Country,
    DestinationBrowse,
    GeoPosition,
    Guide,
    Region,
    TouristSpot,
    User,
)
from .itinerary import Itinerary, DailyPlan, Activity, SpecialEvent
from .session import Session, SessionStore, WizardStep

__all__ = [
    "BrowseLevel",
    "City",
    "CityInfo",
    "Country",
    "DestinationBrowse",
    "GeoPosition",
    "Guide",
    "Region",
    "TouristSpot",
    "User",
    "Itinerary",
    "DailyPlan",
    "Activity",
    "SpecialEvent",
    "Session",
    "SessionStore",
    "WizardStep",
]
