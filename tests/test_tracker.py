"""Tests for the journey tracker subscription."""
from wanderplan.models.destination import GeoPosition
from wanderplan.services.tracker import (
    ERROR_UNSUPPORTED,
    STATUS_DENIED,
    STATUS_LOCATING,
    STATUS_ON_TRACK,
    STATUS_UNAVAILABLE,
    LocationTracker,
    PushLocationSource,
)


class TestLocationTracker:

    def test_start_subscribes(self):
        source = PushLocationSource()
        tracker = LocationTracker(source)

        state = tracker.start()

        assert state.status == STATUS_LOCATING
        assert tracker.is_active
        assert source.active_watches == 1

    def test_restart_keeps_one_subscription(self):
        source = PushLocationSource()
        tracker = LocationTracker(source)

        tracker.start()
        tracker.start()

        assert source.active_watches == 1

    def test_stop_unsubscribes(self):
        source = PushLocationSource()
        tracker = LocationTracker(source)
        tracker.start()

        tracker.stop()

        assert source.active_watches == 0
        assert not tracker.is_active
        # Positions after release go nowhere
        assert source.push(GeoPosition(latitude=1, longitude=1)) == 0
        assert tracker.state.position is None

    def test_position_updates_state(self):
        source = PushLocationSource()
        tracker = LocationTracker(source)
        tracker.start()

        source.push(GeoPosition(latitude=48.85837, longitude=2.294481))

        assert tracker.state.status == STATUS_ON_TRACK
        assert tracker.state.to_display_dict()["position"] == "48.8584, 2.2945"

    def test_denied_keeps_last_position(self):
        source = PushLocationSource()
        tracker = LocationTracker(source)
        tracker.start()
        source.push(GeoPosition(latitude=10, longitude=20))

        source.deny()

        assert tracker.state.status == STATUS_DENIED
        assert tracker.state.error is not None
        assert tracker.state.position == GeoPosition(latitude=10, longitude=20)

    def test_no_source(self):
        """Without geolocation the tracker reports it is unavailable."""
        tracker = LocationTracker()

        state = tracker.start()

        assert state.status == STATUS_UNAVAILABLE
        assert state.error == ERROR_UNSUPPORTED
        assert not tracker.is_active
