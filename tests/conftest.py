"""Shared fixtures: sample data and a scripted stand-in for the AI gateway."""
import pytest

from wanderplan.models.destination import City, CityInfo, Country, Guide, Region, TouristSpot
from wanderplan.models.itinerary import Activity, DailyPlan, Itinerary, SpecialEvent
from wanderplan.models.session import Session
from wanderplan.services.wizard import WizardController


def make_city(name: str = "Kyoto", spot_count: int = 3) -> City:
    return City(
        name=name,
        country="Japan",
        image=f"https://img.test/{name.lower()}.jpg",
        spots=[
            TouristSpot(
                id=f"spot-{i}",
                name=f"Spot {i}",
                description=f"Description {i}",
                image=f"https://img.test/spot-{i}.jpg",
            )
            for i in range(1, spot_count + 1)
        ],
    )


def make_itinerary(title: str = "Your Awesome Trip to Kyoto", days: int = 3) -> Itinerary:
    return Itinerary(
        trip_title=title,
        daily_plans=[
            DailyPlan(
                day=d,
                title=f"Day {d}",
                activities=[
                    Activity(time="09:00 AM", location="Fushimi Inari", description="Walk the torii gates"),
                ],
                special_event=SpecialEvent(name="Gion Odori", location="Gion", details="7 PM") if d == 1 else None,
            )
            for d in range(1, days + 1)
        ],
    )


class FakeGateway:
    """Records calls and returns whatever the test set. None means 'no data'."""

    def __init__(self):
        self.countries = [Country(name="Japan", code="JP"), Country(name="France", code="FR")]
        self.states = [Region(name="Kyoto"), Region(name="Tokyo")]
        self.cities = [CityInfo(name="Kyoto", country="Japan", image="https://img.test/kyoto.jpg")]
        self.city = make_city()
        self.itinerary = make_itinerary()
        self.guides = [
            Guide(name="Aiko Tanaka", specialties=["History"], bio="Local historian.", image="https://img.test/aiko.jpg"),
            Guide(name="Ren Sato", specialties=["Food"], bio="Street food fan.", image="https://img.test/ren.jpg"),
        ]
        self.calls = []
        # Called while a request is "in flight", e.g. to simulate navigation
        self.on_call = None

    def _record(self, *call):
        self.calls.append(call)
        if self.on_call is not None:
            self.on_call()

    async def fetch_countries(self):
        self._record("fetch_countries")
        return self.countries

    async def fetch_states(self, country_name):
        self._record("fetch_states", country_name)
        return self.states

    async def fetch_top_cities(self, state_name, country_name):
        self._record("fetch_top_cities", state_name, country_name)
        return self.cities

    async def fetch_city_detail(self, city_name):
        self._record("fetch_city_detail", city_name)
        return self.city

    async def generate_itinerary(self, city_name, days, selected_spots, start_date):
        self._record("generate_itinerary", city_name, days, [s.id for s in selected_spots], start_date)
        return self.itinerary

    async def generate_guides(self, city_name):
        self._record("generate_guides", city_name)
        return self.guides


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def wizard(gateway):
    return WizardController(gateway=gateway)


@pytest.fixture
def session():
    return Session()


@pytest.fixture
def itinerary():
    return make_itinerary()


@pytest.fixture
def city():
    return make_city()
