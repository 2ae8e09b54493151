"""
Session management - Tracks the wizard step and per-step working data.
"""
from pydantic import BaseModel, Field, PrivateAttr
from typing import TYPE_CHECKING, Any, Optional
from datetime import datetime
from enum import Enum
import uuid

from .destination import City, DestinationBrowse, Guide, TouristSpot, User
from .itinerary import Itinerary

if TYPE_CHECKING:
    from ..services.tracker import LocationTracker


class WizardStep(str, Enum):
    """Steps of the planning wizard. Exactly one is active per session."""
    LOGIN = "login"
    DESTINATION = "destination"
    SPOTS = "spots"
    PLAN = "plan"
    TRACKER = "tracker"
    BOOK_GUIDE = "book_guide"
    SHARED_PLAN = "shared_plan"  # Read-only entry through a share link


class Session(BaseModel):
    """One browser tab's worth of wizard state."""
    session_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique session identifier"
    )
    created_at: datetime = Field(
        default_factory=datetime.now,
        description="Session creation time"
    )
    updated_at: datetime = Field(
        default_factory=datetime.now,
        description="Last update time"
    )

    current_step: WizardStep = Field(
        default=WizardStep.LOGIN,
        description="Active wizard step"
    )
    nav_epoch: int = Field(
        default=0,
        description="Bumped on every step change; async results from an older epoch are dropped"
    )

    user: Optional[User] = None

    # Destination / spots
    browse: DestinationBrowse = Field(default_factory=DestinationBrowse)
    pending_city_query: str = Field(
        default="",
        description="City name currently being resolved"
    )
    is_fetching_city: bool = False
    selected_city: Optional[City] = None
    selected_spots: list[TouristSpot] = Field(
        default_factory=list,
        description="Chosen spots, in selection order"
    )

    # Plan and extras
    itinerary: Optional[Itinerary] = None
    guides: Optional[list[Guide]] = None

    notice: Optional[str] = Field(
        None,
        description="Last retry-eligible error shown inline"
    )

    _tracker: Any = PrivateAttr(default=None)

    def go_to(self, step: WizardStep):
        """Switch the active step."""
        if step != self.current_step:
            self.current_step = step
            self.nav_epoch += 1
            self.notice = None
        self.touch()

    def touch(self):
        self.updated_at = datetime.now()

    def clear_city(self):
        """Forget the resolved city and everything chosen from it."""
        self.selected_city = None
        self.pending_city_query = ""
        self.is_fetching_city = False
        self.selected_spots = []

    def clear_plan(self):
        """Forget the spot selection and generated itinerary."""
        self.selected_spots = []
        self.itinerary = None

    @property
    def tracker(self) -> Optional["LocationTracker"]:
        return self._tracker

    def attach_tracker(self, tracker: "LocationTracker"):
        self._tracker = tracker


# In-memory session storage (would be replaced with database in production)
class SessionStore:
    """Simple in-memory session store."""

    def __init__(self):
        self._sessions: dict[str, Session] = {}

    def create(self) -> Session:
        """Create a new session."""
        session = Session()
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> Optional[Session]:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    def update(self, session: Session):
        """Update a session."""
        self._sessions[session.session_id] = session

    def delete(self, session_id: str):
        """Delete a session, releasing its location subscription."""
        session = self._sessions.pop(session_id, None)
        if session is not None and session.tracker is not None:
            session.tracker.stop()


# Global session store
session_store = SessionStore()
