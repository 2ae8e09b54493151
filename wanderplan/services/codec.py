"""
Share-link codec - Turns an itinerary into a query-string token and back.

Token = percent-encoded base64 of the UTF-8 JSON of the itinerary. The link
carries the whole plan, so nothing is stored server-side.
"""
import base64
import binascii
import json
import logging
from typing import Mapping, Optional, Union
from urllib.parse import parse_qs, quote, unquote

from pydantic import ValidationError

from ..errors import DecodeError
from ..models.itinerary import Itinerary

logger = logging.getLogger(__name__)

PLAN_PARAM = "plan"


def encode(itinerary: Itinerary) -> str:
    """Encode an itinerary as a URL-safe token."""
    text = json.dumps(itinerary.to_wire(), ensure_ascii=False, separators=(",", ":"))
    raw = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return quote(raw, safe="")


def decode(token: str) -> Itinerary:
    """
    Decode a token produced by encode().

    Accepts the token as embedded in the link or as already unquoted by a
    query-string parser.

    Raises:
        DecodeError: on bad base64, bad UTF-8, bad JSON or a non-itinerary shape
    """
    if not token:
        raise DecodeError("Shared plan token is empty")

    raw = unquote(token)
    try:
        data = base64.b64decode(raw.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise DecodeError(f"Shared plan token is not valid base64: {e}") from e

    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Shared plan token is not valid UTF-8: {e}") from e

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Shared plan token is not valid JSON: {e}") from e

    try:
        itinerary = Itinerary.model_validate(payload)
    except ValidationError as e:
        raise DecodeError(f"Shared plan token does not hold an itinerary: {e.error_count()} error(s)") from e

    # JSON escapes can smuggle in lone surrogates that UTF-8 cannot carry
    try:
        json.dumps(itinerary.to_wire(), ensure_ascii=False).encode("utf-8")
    except UnicodeEncodeError as e:
        raise DecodeError(f"Shared plan token holds text that is not valid Unicode: {e.reason}") from e
    return itinerary


def build_share_link(itinerary: Itinerary, origin: str, path: str = "/") -> str:
    """Build `<origin><path>?plan=<token>`."""
    return f"{origin.rstrip('/')}{path}?{PLAN_PARAM}={encode(itinerary)}"


def itinerary_from_query(query: Union[str, Mapping[str, str]]) -> Optional[Itinerary]:
    """
    Pull the shared plan out of a query string or parsed query mapping.

    Returns None when no plan parameter is present.

    Raises:
        DecodeError: if the parameter is present but malformed
    """
    if isinstance(query, str):
        values = parse_qs(query.lstrip("?"), keep_blank_values=True).get(PLAN_PARAM)
        token = values[0] if values else None
    else:
        token = query.get(PLAN_PARAM)

    if token is None:
        return None
    return decode(token)
