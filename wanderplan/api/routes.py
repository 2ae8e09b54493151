"""
API Routes for the trip planning wizard.
"""
from datetime import date
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field
from typing import Optional

from ..config import settings
from ..errors import DecodeError, GatewayUnavailable, InvalidTransition, MissingPrecondition, WizardError
from ..models.destination import GeoPosition
from ..models.session import Session, WizardStep, session_store
from ..services.codec import decode
from ..services.wizard import DEFAULT_TRIP_DAYS, WizardView, get_wizard


router = APIRouter(prefix="/api", tags=["trip-wizard"])


# Request/Response Models
class StartSessionRequest(BaseModel):
    plan: Optional[str] = Field(None, description="Share token from a ?plan= link")


class SessionResponse(BaseModel):
    session_id: str
    view: WizardView


class LoginRequest(BaseModel):
    name: str


class NameRequest(BaseModel):
    name: str


class DestinationRequest(BaseModel):
    name: str
    country: str = ""


class SearchRequest(BaseModel):
    query: str


class SpotsRequest(BaseModel):
    spot_ids: list[str] = Field(default_factory=list)


class PlanRequest(BaseModel):
    days: int = Field(DEFAULT_TRIP_DAYS, ge=1)
    start_date: Optional[date] = None


class PositionReport(BaseModel):
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    denied: bool = False


class ContactResponse(BaseModel):
    message: str
    view: WizardView


# Helpers

def _get_session(session_id: str) -> Session:
    session = session_store.get(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _error_response(error: WizardError) -> HTTPException:
    """Map wizard errors onto HTTP errors."""
    if isinstance(error, GatewayUnavailable):
        return HTTPException(
            status_code=503,
            detail={"message": error.message, "retriable": True, "operation": error.operation},
        )
    if isinstance(error, InvalidTransition):
        return HTTPException(status_code=409, detail=error.message)
    if isinstance(error, MissingPrecondition):
        return HTTPException(status_code=422, detail=error.message)
    if isinstance(error, DecodeError):
        return HTTPException(status_code=400, detail=error.message)
    return HTTPException(status_code=400, detail=error.message)


def _respond(session: Session) -> SessionResponse:
    session_store.update(session)
    return SessionResponse(session_id=session.session_id, view=get_wizard().render(session))


# Endpoints

@router.post("/session", response_model=SessionResponse)
async def start_session(request: Optional[StartSessionRequest] = None):
    """Create a session. A share token opens the read-only shared plan."""
    session = session_store.create()
    get_wizard().start(session, request.plan if request else None)
    return _respond(session)


@router.get("/session/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str):
    """Render the current step."""
    return _respond(_get_session(session_id))


@router.post("/session/{session_id}/login", response_model=SessionResponse)
async def login(session_id: str, request: LoginRequest):
    session = _get_session(session_id)
    try:
        get_wizard().login(session, request.name)
    except WizardError as e:
        raise _error_response(e)
    return _respond(session)


@router.get("/session/{session_id}/catalog/countries", response_model=SessionResponse)
async def load_countries(session_id: str):
    session = _get_session(session_id)
    try:
        await get_wizard().load_countries(session)
    except WizardError as e:
        raise _error_response(e)
    return _respond(session)


@router.post("/session/{session_id}/catalog/country", response_model=SessionResponse)
async def choose_country(session_id: str, request: NameRequest):
    session = _get_session(session_id)
    try:
        await get_wizard().choose_country(session, request.name)
    except WizardError as e:
        raise _error_response(e)
    return _respond(session)


@router.post("/session/{session_id}/catalog/state", response_model=SessionResponse)
async def choose_state(session_id: str, request: NameRequest):
    session = _get_session(session_id)
    try:
        await get_wizard().choose_state(session, request.name)
    except WizardError as e:
        raise _error_response(e)
    return _respond(session)


@router.post("/session/{session_id}/catalog/up", response_model=SessionResponse)
async def browse_up(session_id: str):
    session = _get_session(session_id)
    try:
        get_wizard().browse_up(session)
    except WizardError as e:
        raise _error_response(e)
    return _respond(session)


@router.post("/session/{session_id}/destination", response_model=SessionResponse)
async def select_destination(session_id: str, request: DestinationRequest):
    """Pick a city from the catalog and resolve its spots."""
    session = _get_session(session_id)
    try:
        await get_wizard().select_city(session, request.name, request.country)
    except WizardError as e:
        raise _error_response(e)
    return _respond(session)


@router.post("/session/{session_id}/destination/search", response_model=SessionResponse)
async def search_destination(session_id: str, request: SearchRequest):
    """Free-text "City, Country" search."""
    session = _get_session(session_id)
    try:
        await get_wizard().search_city(session, request.query)
    except WizardError as e:
        raise _error_response(e)
    return _respond(session)


@router.post("/session/{session_id}/spots", response_model=SessionResponse)
async def select_spots(session_id: str, request: SpotsRequest):
    session = _get_session(session_id)
    try:
        get_wizard().select_spots(session, request.spot_ids)
    except WizardError as e:
        raise _error_response(e)
    return _respond(session)


@router.post("/session/{session_id}/plan", response_model=SessionResponse)
async def generate_plan(session_id: str, request: PlanRequest):
    session = _get_session(session_id)
    try:
        await get_wizard().generate_plan(session, request.days, request.start_date)
    except WizardError as e:
        session_store.update(session)
        raise _error_response(e)
    return _respond(session)


@router.get("/session/{session_id}/share")
async def share_plan(session_id: str, request: Request):
    """Build a self-contained link to the current itinerary."""
    session = _get_session(session_id)
    origin = str(request.base_url).rstrip("/")
    try:
        link = get_wizard().share_link(session, origin, settings.share_path)
    except WizardError as e:
        raise _error_response(e)
    return {"link": link}


@router.post("/session/{session_id}/tracker", response_model=SessionResponse)
async def open_tracker(session_id: str):
    session = _get_session(session_id)
    try:
        get_wizard().open_tracker(session)
    except WizardError as e:
        raise _error_response(e)
    return _respond(session)


@router.post("/session/{session_id}/tracker/position", response_model=SessionResponse)
async def report_position(session_id: str, report: PositionReport):
    """Positions (or a permission refusal) from the browser's location watch."""
    session = _get_session(session_id)
    wizard = get_wizard()
    try:
        if report.denied:
            wizard.report_location_denied(session)
        else:
            if report.latitude is None or report.longitude is None:
                raise HTTPException(status_code=422, detail="latitude and longitude are required")
            wizard.report_position(session, GeoPosition(latitude=report.latitude, longitude=report.longitude))
    except WizardError as e:
        raise _error_response(e)
    return _respond(session)


@router.post("/session/{session_id}/guides", response_model=SessionResponse)
async def book_guide(session_id: str):
    """Open the guide booking step and load guides for the city."""
    session = _get_session(session_id)
    wizard = get_wizard()
    try:
        if session.current_step != WizardStep.BOOK_GUIDE:
            wizard.open_book_guide(session)
        await wizard.load_guides(session)
    except WizardError as e:
        session_store.update(session)
        raise _error_response(e)
    return _respond(session)


@router.post("/session/{session_id}/guides/contact", response_model=ContactResponse)
async def contact_guide(session_id: str, request: NameRequest):
    session = _get_session(session_id)
    wizard = get_wizard()
    try:
        message = wizard.contact_guide(session, request.name)
    except WizardError as e:
        raise _error_response(e)
    return ContactResponse(message=message, view=wizard.render(session))


@router.post("/session/{session_id}/back", response_model=SessionResponse)
async def go_back(session_id: str):
    session = _get_session(session_id)
    get_wizard().back(session)
    return _respond(session)


@router.get("/shared")
async def read_shared_plan(plan: str):
    """Decode a share token without starting a session."""
    try:
        itinerary = decode(plan)
    except DecodeError as e:
        raise _error_response(e)
    return {"destination": itinerary.destination_name(), "itinerary": itinerary.to_wire()}
