"""Tests for wizard transitions, guards and rendering."""
import pytest
from datetime import date, timedelta

from wanderplan.errors import GatewayUnavailable, InvalidTransition, MissingPrecondition
from wanderplan.models.destination import BrowseLevel, GeoPosition
from wanderplan.models.session import WizardStep
from wanderplan.services.codec import encode
from wanderplan.services.wizard import PLAN_ERROR, ViewStatus, parse_city_query

from conftest import make_city


async def _to_plan(wizard, session, spot_ids=("spot-1", "spot-2")):
    """Drive a session from login to the plan step."""
    wizard.login(session, "Ava")
    await wizard.search_city(session, "Kyoto, Japan")
    wizard.select_spots(session, list(spot_ids))


class TestEntry:
    """Fresh sessions and shared links."""

    def test_fresh_session_starts_at_login(self, wizard, session):
        wizard.start(session)

        assert session.current_step == WizardStep.LOGIN
        view = wizard.render(session)
        assert view.show_back == False
        assert view.show_header == True

    def test_shared_link_opens_shared_plan(self, wizard, session, itinerary):
        """A good token skips login and hides navigation."""
        wizard.start(session, encode(itinerary))

        assert session.current_step == WizardStep.SHARED_PLAN
        assert session.user is None
        assert session.itinerary == itinerary

        view = wizard.render(session)
        assert view.show_back == False
        assert view.show_header == False
        assert view.data["destination"] == "Kyoto"
        assert view.data["itinerary"]["tripTitle"] == itinerary.trip_title

    def test_shared_plan_has_no_back(self, wizard, session, itinerary):
        wizard.start(session, encode(itinerary))

        assert wizard.back(session) == WizardStep.SHARED_PLAN
        assert session.itinerary == itinerary

    def test_bad_token_falls_back_to_login(self, wizard, session):
        wizard.start(session, "definitely-not-a-plan")

        assert session.current_step == WizardStep.LOGIN
        assert session.itinerary is None

    def test_shared_plan_without_itinerary_reroutes(self, wizard, session):
        session.go_to(WizardStep.SHARED_PLAN)

        assert wizard.render(session).step == WizardStep.LOGIN


class TestLogin:

    def test_login_trims_name(self, wizard, session):
        user = wizard.login(session, "  Ava  ")

        assert user.name == "Ava"
        assert session.current_step == WizardStep.DESTINATION

    def test_blank_name_rejected(self, wizard, session):
        with pytest.raises(MissingPrecondition):
            wizard.login(session, "   ")
        assert session.current_step == WizardStep.LOGIN

    def test_login_only_from_login(self, wizard, session):
        wizard.login(session, "Ava")
        with pytest.raises(InvalidTransition):
            wizard.login(session, "Bob")


class TestCitySearch:
    """Free-text search parsing."""

    def test_city_and_country(self):
        assert parse_city_query("Kyoto, Japan") == ("Kyoto", "Japan")

    def test_missing_country(self):
        assert parse_city_query("Kyoto") == ("Kyoto", "")

    def test_extra_parts_ignored(self):
        assert parse_city_query(" Paris ,  France , Europe") == ("Paris", "France")

    @pytest.mark.asyncio
    async def test_only_city_name_forwarded(self, wizard, session, gateway):
        wizard.login(session, "Ava")
        await wizard.search_city(session, "Kyoto, Japan")

        assert gateway.calls == [("fetch_city_detail", "Kyoto")]
        assert session.pending_city_query == "Kyoto"

    @pytest.mark.asyncio
    async def test_blank_search_rejected(self, wizard, session):
        wizard.login(session, "Ava")
        with pytest.raises(MissingPrecondition):
            await wizard.search_city(session, "  ")
        assert session.current_step == WizardStep.DESTINATION


class TestSpots:

    @pytest.mark.asyncio
    async def test_city_found(self, wizard, session, gateway):
        wizard.login(session, "Ava")
        city = await wizard.select_city(session, "Kyoto", "Japan")

        assert city == gateway.city
        assert session.selected_city == gateway.city
        assert session.is_fetching_city == False
        view = wizard.render(session)
        assert view.step == WizardStep.SPOTS
        assert view.status == ViewStatus.READY
        assert view.model_dump(mode="json")["status"] == "ready"

    @pytest.mark.asyncio
    async def test_city_not_found(self, wizard, session, gateway):
        """No data shows 'not found' and stays on spots."""
        gateway.city = None
        wizard.login(session, "Ava")
        await wizard.select_city(session, "Atlantis", "")

        assert session.current_step == WizardStep.SPOTS
        assert session.selected_city is None
        view = wizard.render(session)
        assert view.status == ViewStatus.NOT_FOUND
        assert "Atlantis" in view.message
        assert session.current_step == WizardStep.SPOTS

    @pytest.mark.asyncio
    async def test_loading_state_while_fetching(self, wizard, session, gateway):
        """While the fetch is in flight the spots step renders as loading."""
        seen = []
        gateway.on_call = lambda: seen.append(wizard.render(session).status)
        wizard.login(session, "Ava")
        await wizard.select_city(session, "Kyoto")

        assert seen == [ViewStatus.LOADING]

    @pytest.mark.asyncio
    async def test_city_without_spots(self, wizard, session, gateway):
        gateway.city = make_city(spot_count=0)
        wizard.login(session, "Ava")
        await wizard.select_city(session, "Kyoto")

        assert wizard.render(session).status == ViewStatus.EMPTY
        assert wizard.select_spots(session, []) == []
        assert session.current_step == WizardStep.PLAN

    @pytest.mark.asyncio
    async def test_selection_order_and_filtering(self, wizard, session):
        wizard.login(session, "Ava")
        await wizard.select_city(session, "Kyoto")
        chosen = wizard.select_spots(session, ["spot-3", "bogus", "spot-1", "spot-3"])

        assert [s.id for s in chosen] == ["spot-3", "spot-1"]
        assert session.selected_spots == chosen

    @pytest.mark.asyncio
    async def test_not_found_then_continue_reroutes(self, wizard, session, gateway):
        """Continuing past a missing city lands back on destination."""
        gateway.city = None
        wizard.login(session, "Ava")
        await wizard.select_city(session, "Atlantis")
        wizard.select_spots(session, ["spot-1"])

        assert session.current_step == WizardStep.DESTINATION
        assert session.pending_city_query == ""
        assert session.selected_spots == []

    @pytest.mark.asyncio
    async def test_cannot_select_while_fetching(self, wizard, session, gateway):
        errors = []

        def try_select():
            try:
                wizard.select_spots(session, [])
            except MissingPrecondition as e:
                errors.append(e)

        gateway.on_call = try_select
        wizard.login(session, "Ava")
        await wizard.select_city(session, "Kyoto")

        assert len(errors) == 1


class TestPlan:

    @pytest.mark.asyncio
    async def test_generate_plan(self, wizard, session, gateway):
        await _to_plan(wizard, session)
        itinerary = await wizard.generate_plan(session, 3, date(2099, 5, 1))

        assert itinerary == gateway.itinerary
        assert session.itinerary == gateway.itinerary
        assert gateway.calls[-1] == ("generate_itinerary", "Kyoto", 3, ["spot-1", "spot-2"], "2099-05-01")

    @pytest.mark.asyncio
    async def test_generate_plan_failure(self, wizard, session, gateway):
        """A failed generation keeps the user on plan with a retry message."""
        gateway.itinerary = None
        await _to_plan(wizard, session)

        with pytest.raises(GatewayUnavailable) as exc_info:
            await wizard.generate_plan(session, 2, date(2099, 5, 1))

        assert exc_info.value.retriable
        assert session.current_step == WizardStep.PLAN
        assert session.itinerary is None
        view = wizard.render(session)
        assert view.status == ViewStatus.ERROR
        assert view.notice == PLAN_ERROR

    @pytest.mark.asyncio
    async def test_retry_after_failure(self, wizard, session, gateway, itinerary):
        gateway.itinerary = None
        await _to_plan(wizard, session)
        with pytest.raises(GatewayUnavailable):
            await wizard.generate_plan(session)

        gateway.itinerary = itinerary
        await wizard.generate_plan(session)

        assert session.itinerary == itinerary
        assert session.notice is None

    @pytest.mark.asyncio
    async def test_days_must_be_positive(self, wizard, session):
        await _to_plan(wizard, session)
        with pytest.raises(MissingPrecondition):
            await wizard.generate_plan(session, 0)

    @pytest.mark.asyncio
    async def test_start_date_in_past(self, wizard, session, gateway):
        await _to_plan(wizard, session)
        with pytest.raises(MissingPrecondition):
            await wizard.generate_plan(session, 3, date.today() - timedelta(days=1))

        assert session.itinerary is None
        assert not [call for call in gateway.calls if call[0] == "generate_itinerary"]

    @pytest.mark.asyncio
    async def test_default_start_date_is_today(self, wizard, session, gateway):
        await _to_plan(wizard, session)
        await wizard.generate_plan(session)

        assert gateway.calls[-1][2] == 3
        assert gateway.calls[-1][4] == date.today().isoformat()

    @pytest.mark.asyncio
    async def test_share_link(self, wizard, session):
        await _to_plan(wizard, session)
        with pytest.raises(MissingPrecondition):
            wizard.share_link(session, "https://x.test")

        await wizard.generate_plan(session)
        link = wizard.share_link(session, "https://x.test", "/")

        assert link.startswith("https://x.test/?plan=")


class TestGuards:
    """Steps entered without their data reroute to destination."""

    def test_plan_without_city(self, wizard, session):
        session.go_to(WizardStep.PLAN)

        assert wizard.resolve(session) == WizardStep.DESTINATION
        assert session.current_step == WizardStep.DESTINATION

    def test_book_guide_without_city(self, wizard, session):
        session.go_to(WizardStep.BOOK_GUIDE)

        assert wizard.render(session).step == WizardStep.DESTINATION

    @pytest.mark.asyncio
    async def test_generate_without_city_reroutes(self, wizard, session):
        session.go_to(WizardStep.PLAN)
        with pytest.raises(MissingPrecondition):
            await wizard.generate_plan(session)
        assert session.current_step == WizardStep.DESTINATION

    @pytest.mark.asyncio
    async def test_tracker_and_guides_need_itinerary(self, wizard, session):
        await _to_plan(wizard, session)

        with pytest.raises(MissingPrecondition):
            wizard.open_tracker(session)
        with pytest.raises(MissingPrecondition):
            wizard.open_book_guide(session)
        assert session.current_step == WizardStep.PLAN

    def test_wrong_step(self, wizard, session):
        with pytest.raises(InvalidTransition):
            wizard.select_spots(session, [])


class TestBack:
    """Back navigation and the data it clears."""

    @pytest.mark.asyncio
    async def test_back_from_plan_clears_plan(self, wizard, session):
        await _to_plan(wizard, session)
        await wizard.generate_plan(session)

        assert wizard.back(session) == WizardStep.SPOTS
        assert session.selected_spots == []
        assert session.itinerary is None
        assert session.selected_city is not None

    @pytest.mark.asyncio
    async def test_back_from_plan_with_nothing_selected(self, wizard, session):
        await _to_plan(wizard, session, spot_ids=())

        wizard.back(session)
        assert session.selected_spots == []
        assert session.itinerary is None

    @pytest.mark.asyncio
    async def test_back_from_spots_clears_city(self, wizard, session):
        wizard.login(session, "Ava")
        await wizard.select_city(session, "Kyoto")

        assert wizard.back(session) == WizardStep.DESTINATION
        assert session.selected_city is None
        assert session.pending_city_query == ""
        assert session.selected_spots == []

    @pytest.mark.asyncio
    async def test_back_from_tracker_and_guides(self, wizard, session):
        await _to_plan(wizard, session)
        itinerary = await wizard.generate_plan(session)

        wizard.open_tracker(session)
        assert wizard.back(session) == WizardStep.PLAN
        assert session.tracker.is_active == False

        wizard.open_book_guide(session)
        assert wizard.back(session) == WizardStep.PLAN
        assert session.itinerary == itinerary

    def test_back_from_destination_and_login(self, wizard, session):
        wizard.login(session, "Ava")

        assert wizard.back(session) == WizardStep.LOGIN
        assert session.user.name == "Ava"
        assert wizard.back(session) == WizardStep.LOGIN


class TestStaleResults:
    """Results arriving after the user moved on are dropped."""

    @pytest.mark.asyncio
    async def test_city_result_after_back(self, wizard, session, gateway):
        wizard.login(session, "Ava")
        gateway.on_call = lambda: wizard.back(session)

        result = await wizard.select_city(session, "Kyoto")

        assert result is None
        assert session.current_step == WizardStep.DESTINATION
        assert session.selected_city is None

    @pytest.mark.asyncio
    async def test_itinerary_result_after_back(self, wizard, session, gateway):
        await _to_plan(wizard, session)
        gateway.on_call = lambda: wizard.back(session)

        result = await wizard.generate_plan(session)

        assert result is None
        assert session.itinerary is None
        assert session.current_step == WizardStep.SPOTS

    @pytest.mark.asyncio
    async def test_failed_result_after_back_is_not_an_error(self, wizard, session, gateway):
        await _to_plan(wizard, session)
        await wizard.generate_plan(session)
        wizard.open_book_guide(session)
        gateway.guides = None
        gateway.on_call = lambda: wizard.back(session)

        assert await wizard.load_guides(session) is None
        assert session.notice is None


class TestCatalog:
    """Country -> state -> city drill-down."""

    @pytest.mark.asyncio
    async def test_drill_down(self, wizard, session, gateway):
        wizard.login(session, "Ava")
        await wizard.load_countries(session)
        await wizard.choose_country(session, "japan")
        cities = await wizard.choose_state(session, "Kyoto")

        assert cities == gateway.cities
        assert session.browse.level == BrowseLevel.CITY
        assert ("fetch_top_cities", "Kyoto", "Japan") in gateway.calls

        view = wizard.render(session)
        assert view.data["selected_country"] == "Japan"
        assert view.data["cities"][0]["name"] == "Kyoto"

    @pytest.mark.asyncio
    async def test_countries_cached(self, wizard, session, gateway):
        wizard.login(session, "Ava")
        await wizard.load_countries(session)
        await wizard.load_countries(session)

        assert gateway.calls.count(("fetch_countries",)) == 1

    @pytest.mark.asyncio
    async def test_browse_up(self, wizard, session):
        wizard.login(session, "Ava")
        await wizard.load_countries(session)
        await wizard.choose_country(session, "Japan")
        await wizard.choose_state(session, "Tokyo")

        assert wizard.browse_up(session) == BrowseLevel.STATE
        assert session.browse.cities == []
        assert wizard.browse_up(session) == BrowseLevel.COUNTRY
        assert session.browse.selected_country is None
        assert wizard.browse_up(session) == BrowseLevel.COUNTRY

    @pytest.mark.asyncio
    async def test_countries_unavailable(self, wizard, session, gateway):
        wizard.login(session, "Ava")
        gateway.countries = None
        with pytest.raises(GatewayUnavailable) as exc_info:
            await wizard.load_countries(session)

        assert exc_info.value.message == "Could not load countries. Please refresh the page."
        assert session.browse.level == BrowseLevel.COUNTRY
        assert session.current_step == WizardStep.DESTINATION

    @pytest.mark.asyncio
    async def test_states_unavailable(self, wizard, session, gateway):
        """The level still moves so the user can retry from there."""
        wizard.login(session, "Ava")
        await wizard.load_countries(session)
        gateway.states = None
        with pytest.raises(GatewayUnavailable) as exc_info:
            await wizard.choose_country(session, "Japan")

        assert exc_info.value.message == "Could not load states for Japan. Please try again."
        assert session.browse.level == BrowseLevel.STATE
        assert wizard.render(session).status == ViewStatus.ERROR

    @pytest.mark.asyncio
    async def test_unknown_country(self, wizard, session):
        wizard.login(session, "Ava")
        await wizard.load_countries(session)
        with pytest.raises(MissingPrecondition):
            await wizard.choose_country(session, "Narnia")


class TestTrackerStep:

    @pytest.mark.asyncio
    async def test_position_updates(self, wizard, session):
        await _to_plan(wizard, session)
        await wizard.generate_plan(session)
        state = wizard.open_tracker(session)

        assert state.active == True
        assert wizard.render(session).status == ViewStatus.LOADING

        wizard.report_position(session, GeoPosition(latitude=35.01164, longitude=135.76803))
        view = wizard.render(session)
        assert view.status == ViewStatus.READY
        assert view.data["position"] == "35.0116, 135.7680"
        assert view.data["status"] == "You are on track! Enjoy your journey."

    @pytest.mark.asyncio
    async def test_denied(self, wizard, session):
        await _to_plan(wizard, session)
        await wizard.generate_plan(session)
        wizard.open_tracker(session)
        wizard.report_location_denied(session)

        view = wizard.render(session)
        assert view.status == ViewStatus.ERROR
        assert view.data["status"] == "Location Access Denied"

    @pytest.mark.asyncio
    async def test_single_subscription_across_visits(self, wizard, session):
        await _to_plan(wizard, session)
        await wizard.generate_plan(session)

        wizard.open_tracker(session)
        wizard.back(session)
        wizard.open_tracker(session)

        assert session.tracker.source.active_watches == 1

    def test_report_outside_tracker(self, wizard, session):
        with pytest.raises(InvalidTransition):
            wizard.report_position(session, GeoPosition(latitude=0, longitude=0))


class TestGuides:

    @pytest.mark.asyncio
    async def test_load_and_contact(self, wizard, session, gateway):
        await _to_plan(wizard, session)
        await wizard.generate_plan(session)
        wizard.open_book_guide(session)

        assert wizard.render(session).status == ViewStatus.LOADING
        guides = await wizard.load_guides(session)

        assert guides == gateway.guides
        assert ("generate_guides", "Kyoto") in gateway.calls
        assert wizard.contact_guide(session, "Ren Sato") == "Contacting Ren Sato..."
        with pytest.raises(MissingPrecondition):
            wizard.contact_guide(session, "Nobody")

    @pytest.mark.asyncio
    async def test_guides_unavailable(self, wizard, session, gateway):
        gateway.guides = None
        await _to_plan(wizard, session)
        await wizard.generate_plan(session)
        wizard.open_book_guide(session)

        with pytest.raises(GatewayUnavailable):
            await wizard.load_guides(session)
        view = wizard.render(session)
        assert view.step == WizardStep.BOOK_GUIDE
        assert view.status == ViewStatus.ERROR


class TestScenario:
    """The full happy path from login to back-navigation."""

    @pytest.mark.asyncio
    async def test_ava_plans_kyoto(self, wizard, session, gateway):
        wizard.start(session)
        wizard.login(session, "Ava")
        await wizard.search_city(session, "Kyoto, Japan")

        assert gateway.calls[0] == ("fetch_city_detail", "Kyoto")

        wizard.select_spots(session, ["spot-2", "spot-1"])
        await wizard.generate_plan(session, 3, date(2099, 5, 1))

        assert session.itinerary is not None
        assert gateway.calls[-1] == ("generate_itinerary", "Kyoto", 3, ["spot-2", "spot-1"], "2099-05-01")

        assert wizard.back(session) == WizardStep.SPOTS
        assert session.selected_spots == []
        assert session.itinerary is None
