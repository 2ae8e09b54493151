"""
Journey Tracker - location subscription for the tracker step.

The browser owns the real geolocation watch; it posts positions back and
PushLocationSource fans them out to whoever is watching.
"""
import logging
from typing import Callable, Optional, Protocol

from pydantic import BaseModel

from ..models.destination import GeoPosition

logger = logging.getLogger(__name__)


PositionCallback = Callable[[GeoPosition], None]
ErrorCallback = Callable[[str], None]

STATUS_IDLE = "Tracker idle"
STATUS_LOCATING = "Getting your location..."
STATUS_ON_TRACK = "You are on track! Enjoy your journey."
STATUS_DENIED = "Location Access Denied"
STATUS_UNAVAILABLE = "Tracker Unavailable"

ERROR_DENIED = "Unable to retrieve your location. Please grant permission and try again."
ERROR_UNSUPPORTED = "Geolocation is not supported by your browser."


class LocationSource(Protocol):
    """Subscription-style position feed."""

    def watch(self, on_position: PositionCallback, on_error: ErrorCallback) -> int:
        ...

    def clear_watch(self, watch_id: int) -> None:
        ...


class PushLocationSource:
    """Location source fed by positions the client reports."""

    def __init__(self):
        self._watchers: dict[int, tuple[PositionCallback, ErrorCallback]] = {}
        self._next_id = 1

    def watch(self, on_position: PositionCallback, on_error: ErrorCallback) -> int:
        watch_id = self._next_id
        self._next_id += 1
        self._watchers[watch_id] = (on_position, on_error)
        return watch_id

    def clear_watch(self, watch_id: int) -> None:
        self._watchers.pop(watch_id, None)

    @property
    def active_watches(self) -> int:
        return len(self._watchers)

    def push(self, position: GeoPosition) -> int:
        """Deliver a position to every watcher. Returns how many received it."""
        for on_position, _ in list(self._watchers.values()):
            on_position(position)
        return len(self._watchers)

    def deny(self, reason: str = ERROR_DENIED) -> int:
        """Report that the client refused or failed to provide a location."""
        for _, on_error in list(self._watchers.values()):
            on_error(reason)
        return len(self._watchers)


class TrackerState(BaseModel):
    """Snapshot of the tracker for rendering."""
    active: bool = False
    status: str = STATUS_IDLE
    position: Optional[GeoPosition] = None
    error: Optional[str] = None

    def to_display_dict(self) -> dict:
        return {
            "active": self.active,
            "status": self.status,
            "position": self.position.display() if self.position else None,
            "error": self.error,
        }


class LocationTracker:
    """Holds at most one location subscription at a time."""

    def __init__(self, source: Optional[LocationSource] = None):
        self.source = source
        self.state = TrackerState()
        self._watch_id: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self._watch_id is not None

    def start(self) -> TrackerState:
        """Subscribe to the source, replacing any existing subscription."""
        self.stop()

        if self.source is None:
            self.state = TrackerState(status=STATUS_UNAVAILABLE, error=ERROR_UNSUPPORTED)
            return self.state

        self.state = TrackerState(active=True, status=STATUS_LOCATING)
        self._watch_id = self.source.watch(self._on_position, self._on_error)
        logger.debug(f"Location watch {self._watch_id} started")
        return self.state

    def stop(self):
        """Release the subscription, if any."""
        if self._watch_id is None:
            return
        if self.source is not None:
            self.source.clear_watch(self._watch_id)
        logger.debug(f"Location watch {self._watch_id} released")
        self._watch_id = None
        self.state = TrackerState()

    def _on_position(self, position: GeoPosition):
        self.state = TrackerState(active=True, status=STATUS_ON_TRACK, position=position)

    def _on_error(self, reason: str):
        self.state = TrackerState(
            active=True,
            status=STATUS_DENIED,
            position=self.state.position,
            error=reason,
        )
