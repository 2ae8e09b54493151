"""
Wizard Controller - Step transitions for the trip planning wizard.

The controller owns no state of its own: every operation takes the Session,
checks that the action is legal from the current step, applies its side
effects and, for steps that need AI data, awaits the gateway.

Async operations capture session.nav_epoch before awaiting. If the user has
moved to another step by the time the result arrives, the result is dropped.
"""
import logging
from datetime import date
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, Field

from .codec import build_share_link, decode
from .gateway import AIGateway, get_gateway
from .tracker import LocationTracker, PushLocationSource, TrackerState
from ..errors import DecodeError, GatewayUnavailable, InvalidTransition, MissingPrecondition
from ..models.destination import (
    BrowseLevel,
    City,
    CityInfo,
    DestinationBrowse,
    Country,
    GeoPosition,
    Guide,
    Region,
    TouristSpot,
    User,
)
from ..models.itinerary import Itinerary
from ..models.session import Session, WizardStep

logger = logging.getLogger(__name__)


DEFAULT_TRIP_DAYS = 3

COUNTRIES_ERROR = "Could not load countries. Please refresh the page."
STATES_ERROR = "Could not load states for {name}. Please try again."
CITIES_ERROR = "Could not load cities for {name}. Please try again."
PLAN_ERROR = "Sorry, I couldn't create a plan right now. The AI might be busy. Please try again later."
GUIDES_ERROR = "Could not find available guides at this time. Please try again later."

# Where back() goes from each step
BACK_TARGETS = {
    WizardStep.BOOK_GUIDE: WizardStep.PLAN,
    WizardStep.TRACKER: WizardStep.PLAN,
    WizardStep.PLAN: WizardStep.SPOTS,
    WizardStep.SPOTS: WizardStep.DESTINATION,
    WizardStep.DESTINATION: WizardStep.LOGIN,
}


class ViewStatus(str, Enum):
    """How the current step's data stands."""
    READY = "ready"
    LOADING = "loading"
    NOT_FOUND = "not_found"
    EMPTY = "empty"
    ERROR = "error"


class WizardView(BaseModel):
    """What the front end should render for the current step."""
    step: WizardStep
    status: ViewStatus = ViewStatus.READY
    show_header: bool = True
    show_back: bool = True
    user: Optional[str] = None
    title: str = ""
    message: str = ""
    notice: Optional[str] = None
    data: dict = Field(default_factory=dict)


def parse_city_query(text: str) -> Tuple[str, str]:
    """
    Split free text like "Kyoto, Japan" into (city, country).

    A missing country comes back as an empty string.
    """
    parts = [part.strip() for part in text.split(",")]
    city = parts[0]
    country = parts[1] if len(parts) > 1 else ""
    return city, country


class WizardController:
    """
    Applies wizard transitions to a session.

    Forward transitions raise InvalidTransition when called from the wrong
    step and MissingPrecondition when their input is missing. Gateway failures
    are stored as session.notice and raised as GatewayUnavailable; they never
    move the wizard forward.
    """

    def __init__(self, gateway: Optional[AIGateway] = None):
        self.gateway = gateway or get_gateway()

    # Entry

    def start(self, session: Session, plan_token: Optional[str] = None) -> Session:
        """Put a fresh session at its entry step, using a share token if given."""
        if plan_token is None:
            return session

        try:
            itinerary = decode(plan_token)
        except DecodeError as e:
            logger.warning(f"Ignoring shared plan for session {session.session_id}: {e.message}")
            return session

        session.itinerary = itinerary
        session.go_to(WizardStep.SHARED_PLAN)
        logger.info(f"Session {session.session_id} opened shared plan '{itinerary.trip_title}'")
        return session

    # Login

    def login(self, session: Session, name: str) -> User:
        self._require_step(session, "log in", WizardStep.LOGIN)

        name = (name or "").strip()
        if not name:
            raise MissingPrecondition("Please enter your name to continue.")

        session.user = User(name=name)
        session.go_to(WizardStep.DESTINATION)
        return session.user

    # Destination catalog

    async def load_countries(self, session: Session) -> list[Country]:
        self._require_step(session, "browse countries", WizardStep.DESTINATION)
        browse = session.browse
        if browse.countries:
            return browse.countries

        epoch = session.nav_epoch
        countries = await self.gateway.fetch_countries()
        if session.nav_epoch != epoch:
            logger.info(f"Dropping stale country list for session {session.session_id}")
            return []
        if countries is None:
            raise self._unavailable(session, COUNTRIES_ERROR, "fetch_countries")

        browse.countries = countries
        session.notice = None
        return countries

    async def choose_country(self, session: Session, name: str) -> list[Region]:
        self._require_step(session, "choose a country", WizardStep.DESTINATION)
        browse = session.browse
        country = next((c for c in browse.countries if c.name.lower() == name.strip().lower()), None)
        if country is None:
            raise MissingPrecondition(f"Unknown country: {name}")

        browse.selected_country = country
        browse.selected_region = None
        browse.regions = []
        browse.cities = []
        browse.level = BrowseLevel.STATE

        epoch = session.nav_epoch
        regions = await self.gateway.fetch_states(country.name)
        if session.nav_epoch != epoch or browse.selected_country != country:
            logger.info(f"Dropping stale region list for {country.name}")
            return []
        if regions is None:
            raise self._unavailable(session, STATES_ERROR.format(name=country.name), "fetch_states")

        browse.regions = regions
        session.notice = None
        return regions

    async def choose_state(self, session: Session, name: str) -> list[CityInfo]:
        self._require_step(session, "choose a state", WizardStep.DESTINATION)
        browse = session.browse
        country = browse.selected_country
        if country is None:
            raise MissingPrecondition("Choose a country first.")
        region = next((r for r in browse.regions if r.name.lower() == name.strip().lower()), None)
        if region is None:
            raise MissingPrecondition(f"Unknown state: {name}")

        browse.selected_region = region
        browse.cities = []
        browse.level = BrowseLevel.CITY

        epoch = session.nav_epoch
        cities = await self.gateway.fetch_top_cities(region.name, country.name)
        if session.nav_epoch != epoch or browse.selected_region != region:
            logger.info(f"Dropping stale city list for {region.name}")
            return []
        if cities is None:
            raise self._unavailable(session, CITIES_ERROR.format(name=region.name), "fetch_top_cities")

        browse.cities = cities
        session.notice = None
        return cities

    def browse_up(self, session: Session) -> BrowseLevel:
        """Breadcrumb navigation one level up the catalog."""
        self._require_step(session, "browse", WizardStep.DESTINATION)
        browse = session.browse
        if browse.level == BrowseLevel.CITY:
            browse.level = BrowseLevel.STATE
            browse.selected_region = None
            browse.cities = []
        elif browse.level == BrowseLevel.STATE:
            browse.level = BrowseLevel.COUNTRY
            browse.selected_country = None
            browse.regions = []
        session.notice = None
        return browse.level

    # Destination -> Spots

    async def select_city(self, session: Session, name: str, country: str = "") -> Optional[City]:
        """
        Move to the spots step and resolve the city's details.

        Returns the city, or None if the AI had no data (the spots step then
        shows "not found") or the result arrived after the user moved on.
        """
        self._require_step(session, "select a city", WizardStep.DESTINATION)

        name = (name or "").strip()
        if not name:
            raise MissingPrecondition("Please choose a city.")

        session.clear_city()
        session.pending_city_query = name
        session.is_fetching_city = True
        session.go_to(WizardStep.SPOTS)
        epoch = session.nav_epoch

        logger.info(f"Resolving city '{name}' (country '{country}') for session {session.session_id}")
        city = await self.gateway.fetch_city_detail(name)

        if session.nav_epoch != epoch:
            logger.info(f"Dropping stale details for '{name}'")
            return None

        session.selected_city = city
        session.is_fetching_city = False
        session.touch()
        if city is None:
            logger.info(f"No details found for '{name}'")
        return city

    async def search_city(self, session: Session, text: str) -> Optional[City]:
        """Free-text "City, Country" search. Only the city name is looked up."""
        if not (text or "").strip():
            raise MissingPrecondition("Type a destination, e.g. 'Paris, France'.")
        city_name, country = parse_city_query(text)
        return await self.select_city(session, city_name, country)

    # Spots -> Plan

    def select_spots(self, session: Session, spot_ids: list[str]) -> list[TouristSpot]:
        self._require_step(session, "select spots", WizardStep.SPOTS)
        if session.is_fetching_city:
            raise MissingPrecondition(f"Still discovering {session.pending_city_query}. Please wait a moment.")

        city = session.selected_city
        chosen: list[TouristSpot] = []
        seen = set()
        for spot_id in spot_ids:
            if spot_id in seen or city is None:
                continue
            spot = city.find_spot(spot_id)
            if spot is not None:
                chosen.append(spot)
                seen.add(spot_id)

        session.selected_spots = chosen
        session.go_to(WizardStep.PLAN)
        self.resolve(session)
        return chosen

    # Plan

    async def generate_plan(
        self,
        session: Session,
        days: int = DEFAULT_TRIP_DAYS,
        start_date: Optional[date] = None
    ) -> Optional[Itinerary]:
        """
        Ask the AI for an itinerary and store it on the session.

        Raises:
            GatewayUnavailable: the AI returned nothing; the user may retry
        """
        self._require_step(session, "generate a plan", WizardStep.PLAN)
        city = self._require_city(session)
        if days < 1:
            raise MissingPrecondition("A trip needs at least one day.")
        today = date.today()
        start_date = start_date or today
        if start_date < today:
            raise MissingPrecondition("The trip cannot start in the past.")

        session.notice = None
        epoch = session.nav_epoch
        itinerary = await self.gateway.generate_itinerary(
            city.name,
            days,
            list(session.selected_spots),
            start_date.isoformat()
        )

        if session.nav_epoch != epoch:
            logger.info(f"Dropping stale itinerary for {city.name}")
            return None
        if itinerary is None:
            raise self._unavailable(session, PLAN_ERROR, "generate_itinerary")

        session.itinerary = itinerary
        session.touch()
        logger.info(f"Generated {len(itinerary.daily_plans)}-day plan for {city.name}")
        return itinerary

    def share_link(self, session: Session, origin: str, path: str = "/") -> str:
        if session.itinerary is None:
            raise MissingPrecondition("Generate a plan before sharing it.")
        return build_share_link(session.itinerary, origin, path)

    # Plan -> Tracker

    def open_tracker(self, session: Session) -> TrackerState:
        self._require_step(session, "open the tracker", WizardStep.PLAN)
        self._require_itinerary(session)

        session.go_to(WizardStep.TRACKER)
        tracker = session.tracker
        if tracker is None:
            tracker = LocationTracker(PushLocationSource())
            session.attach_tracker(tracker)
        return tracker.start()

    def report_position(self, session: Session, position: GeoPosition) -> TrackerState:
        source = self._tracker_source(session)
        source.push(position)
        return session.tracker.state

    def report_location_denied(self, session: Session) -> TrackerState:
        source = self._tracker_source(session)
        source.deny()
        return session.tracker.state

    # Plan -> Book guide

    def open_book_guide(self, session: Session):
        self._require_step(session, "book a guide", WizardStep.PLAN)
        self._require_itinerary(session)
        session.guides = None
        session.go_to(WizardStep.BOOK_GUIDE)
        self.resolve(session)

    async def load_guides(self, session: Session) -> Optional[list[Guide]]:
        self._require_step(session, "load guides", WizardStep.BOOK_GUIDE)
        city = self._require_city(session)

        session.notice = None
        epoch = session.nav_epoch
        guides = await self.gateway.generate_guides(city.name)
        if session.nav_epoch != epoch:
            logger.info(f"Dropping stale guide list for {city.name}")
            return None
        if guides is None:
            raise self._unavailable(session, GUIDES_ERROR, "generate_guides")

        session.guides = guides
        session.touch()
        return guides

    def contact_guide(self, session: Session, guide_name: str) -> str:
        self._require_step(session, "contact a guide", WizardStep.BOOK_GUIDE)
        guide = next((g for g in session.guides or [] if g.name == guide_name), None)
        if guide is None:
            raise MissingPrecondition(f"No guide named {guide_name}.")
        return f"Contacting {guide.name}..."

    # Back

    def back(self, session: Session) -> WizardStep:
        """Go one step back, clearing the data the left step produced."""
        step = session.current_step
        target = BACK_TARGETS.get(step)
        if target is None:
            # Login has nowhere to go; the shared plan is read-only
            return step

        if step == WizardStep.TRACKER and session.tracker is not None:
            session.tracker.stop()
        elif step == WizardStep.BOOK_GUIDE:
            session.guides = None
        elif step == WizardStep.PLAN:
            session.clear_plan()
        elif step == WizardStep.SPOTS:
            session.clear_city()
        elif step == WizardStep.DESTINATION:
            session.browse = DestinationBrowse()

        session.go_to(target)
        return target

    # Guards and rendering

    def resolve(self, session: Session) -> WizardStep:
        """Reroute steps that are missing the data they render."""
        step = session.current_step
        fallback = None
        if step in (WizardStep.PLAN, WizardStep.BOOK_GUIDE) and session.selected_city is None:
            fallback = WizardStep.DESTINATION
        elif step == WizardStep.SHARED_PLAN and session.itinerary is None:
            fallback = WizardStep.LOGIN

        if fallback is not None:
            logger.warning(f"Session {session.session_id}: {step.value} has no data, rerouting to {fallback.value}")
            if fallback == WizardStep.DESTINATION:
                session.clear_city()
            session.go_to(fallback)
            return fallback
        return step

    def render(self, session: Session) -> WizardView:
        step = self.resolve(session)
        view = WizardView(
            step=step,
            show_header=step != WizardStep.SHARED_PLAN,
            show_back=step not in (WizardStep.LOGIN, WizardStep.SHARED_PLAN),
            user=session.user.name if session.user else None,
            notice=session.notice,
        )
        if session.notice:
            view.status = ViewStatus.ERROR

        renderers = {
            WizardStep.LOGIN: self._render_login,
            WizardStep.DESTINATION: self._render_destination,
            WizardStep.SPOTS: self._render_spots,
            WizardStep.PLAN: self._render_plan,
            WizardStep.TRACKER: self._render_tracker,
            WizardStep.BOOK_GUIDE: self._render_book_guide,
            WizardStep.SHARED_PLAN: self._render_shared_plan,
        }
        renderers[step](session, view)
        return view

    def _render_login(self, session: Session, view: WizardView):
        view.title = "Plan your next adventure"
        view.message = "Tell us your name to get started."

    def _render_destination(self, session: Session, view: WizardView):
        browse = session.browse
        view.title = "Where do you want to go?"
        view.message = "Browse by country, or search e.g. 'Paris, France'."
        view.data = {
            "level": browse.level.value,
            "countries": [c.model_dump() for c in browse.countries],
            "states": [r.model_dump() for r in browse.regions],
            "cities": [c.model_dump() for c in browse.cities],
            "selected_country": browse.selected_country.name if browse.selected_country else None,
            "selected_state": browse.selected_region.name if browse.selected_region else None,
        }

    def _render_spots(self, session: Session, view: WizardView):
        city = session.selected_city
        name = session.pending_city_query
        if session.is_fetching_city:
            view.status = ViewStatus.LOADING
            view.title = f"Discovering {name}..."
            view.message = "Our AI is finding the most incredible sights and hidden gems for you. Please wait a moment."
        elif city is None:
            view.status = ViewStatus.NOT_FOUND
            view.title = "Could Not Find Destination"
            view.message = (
                f'Sorry, our AI couldn\'t find detailed information for "{name}". '
                "Please use the back arrow to return to the destination selection and try a different city."
            )
        elif not city.spots:
            view.status = ViewStatus.EMPTY
            view.title = f"Ready to Explore {city.name}?"
            view.message = (
                "We couldn't pinpoint specific \"must-see\" attractions for this location. "
                "Our AI can create a wonderful general itinerary based on popular areas and local culture."
            )
            view.data = {"city": city.model_dump()}
        else:
            view.title = f"Top spots in {city.name}"
            view.message = "Pick the places you don't want to miss."
            view.data = {"city": city.model_dump()}

    def _render_plan(self, session: Session, view: WizardView):
        city = session.selected_city
        if session.itinerary is not None:
            view.title = session.itinerary.trip_title
            view.data = {
                "city": city.name,
                "itinerary": session.itinerary.to_wire(),
            }
            return

        view.title = f"Plan your trip to {city.name}"
        view.message = (
            f"Including {len(session.selected_spots)} selected spot(s)."
            if session.selected_spots
            else "We'll build a plan around the most popular attractions."
        )
        view.data = {
            "city": city.name,
            "selected_spots": [s.model_dump() for s in session.selected_spots],
            "default_days": DEFAULT_TRIP_DAYS,
            "min_start_date": date.today().isoformat(),
        }

    def _render_tracker(self, session: Session, view: WizardView):
        state = session.tracker.state if session.tracker else TrackerState()
        view.title = "Journey Tracker"
        view.message = "You can now navigate back to your itinerary using the back arrow in the header."
        if state.active and state.position is None and state.error is None:
            view.status = ViewStatus.LOADING
        elif state.error:
            view.status = ViewStatus.ERROR
        view.data = state.to_display_dict()

    def _render_book_guide(self, session: Session, view: WizardView):
        city = session.selected_city
        view.title = f"Book a local guide in {city.name}"
        if session.guides is None:
            if not session.notice:
                view.status = ViewStatus.LOADING
            return
        view.data = {"guides": [g.model_dump() for g in session.guides]}

    def _render_shared_plan(self, session: Session, view: WizardView):
        itinerary = session.itinerary
        view.title = itinerary.trip_title
        view.data = {
            "destination": itinerary.destination_name(),
            "itinerary": itinerary.to_wire(),
        }

    # Helpers

    def _require_step(self, session: Session, action: str, *steps: WizardStep):
        if session.current_step not in steps:
            raise InvalidTransition(f"Cannot {action} from the {session.current_step.value} step.")

    def _require_city(self, session: Session) -> City:
        if session.selected_city is None:
            self.resolve(session)
            raise MissingPrecondition("Choose a destination first.")
        return session.selected_city

    def _require_itinerary(self, session: Session) -> Itinerary:
        if session.itinerary is None:
            raise MissingPrecondition("Generate a plan first.")
        return session.itinerary

    def _tracker_source(self, session: Session) -> PushLocationSource:
        self._require_step(session, "report a position", WizardStep.TRACKER)
        tracker = session.tracker
        if tracker is None or not isinstance(tracker.source, PushLocationSource):
            raise MissingPrecondition("The tracker is not running.")
        return tracker.source

    def _unavailable(self, session: Session, message: str, operation: str) -> GatewayUnavailable:
        session.notice = message
        session.touch()
        logger.warning(f"Session {session.session_id}: {operation} returned no data")
        return GatewayUnavailable(message, operation)


# Global wizard controller
wizard_controller: Optional[WizardController] = None


def get_wizard() -> WizardController:
    """Get or create the global wizard controller."""
    global wizard_controller
    if wizard_controller is None:
        wizard_controller = WizardController()
    return wizard_controller
