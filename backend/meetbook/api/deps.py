from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Awaitable, NoReturn, Type, TypeVar

from fastapi import HTTPException, Request
from pydantic import BaseModel, ConfigDict, ValidationError

from meetbook.core.config import Settings
from meetbook.core.errors import (
    HostNotBookable,
    InvalidMeeting,
    InvalidParticipant,
    InvalidTransition,
    InvalidWindow,
    NotBookable,
    NotFound,
    PersistenceFailure,
    SchedulingError,
    SlotUnavailable,
)
from meetbook.scheduling import AvailabilityService, BookingEngine, SlotService

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

# Most specific classes first: HostNotBookable must win over NotBookable.
_STATUS_BY_ERROR: list[tuple[type[SchedulingError], int]] = [
    (HostNotBookable, 404),
    (NotFound, 404),
    (NotBookable, 403),
    (InvalidWindow, 400),
    (InvalidParticipant, 400),
    (InvalidMeeting, 400),
    (SlotUnavailable, 409),
    (InvalidTransition, 409),
]


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_booking_engine(request: Request) -> BookingEngine:
    return request.app.state.booking_engine


def get_slot_service(request: Request) -> SlotService:
    return request.app.state.booking_engine.slots


def get_availability_service(request: Request) -> AvailabilityService:
    return request.app.state.availability_service


def raise_http(error: SchedulingError) -> NoReturn:
    """Translate a scheduling error into an HTTPException.

    Storage failures are logged with their cause and reported generically.
    """
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            raise HTTPException(status_code=status_code, detail=str(error)) from error
    if isinstance(error, PersistenceFailure):
        logger.exception(f"Storage failure: {error}")
    else:
        logger.exception(f"Unhandled scheduling error: {error}")
    raise HTTPException(status_code=500, detail="Internal server error") from error


async def bounded(request: Request, awaitable: Awaitable[T]) -> T:
    """Await a core operation under the request timeout, mapping errors to HTTP."""
    timeout = get_settings(request).request_timeout_seconds
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"Request {request.method} {request.url.path} timed out after {timeout}s")
        raise HTTPException(status_code=504, detail="Request timed out") from e
    except SchedulingError as e:
        raise_http(e)


def parse_date(value: str | None) -> date:
    if not value:
        raise HTTPException(status_code=400, detail="Date parameter is required")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format; expected YYYY-MM-DD")


def parse_datetime(value: str, field: str) -> datetime:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        raise HTTPException(status_code=400, detail=f"Invalid {field}; expected an ISO 8601 datetime")


class BaseBody(BaseModel):
    """Common base for JSON request bodies.

    Fields are snake_case in Python and camelCase on the wire; unknown
    fields sent by older clients are ignored.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


async def read_body(request: Request, model: Type[M]) -> M:
    """Parse the JSON body into ``model``; anything malformed is a 400."""
    try:
        payload: Any = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be valid JSON")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    try:
        return model(**payload)
    except ValidationError as e:
        missing = [
            ".".join(str(part) for part in err["loc"])
            for err in e.errors()
            if err["type"] == "missing"
        ]
        if missing:
            raise HTTPException(status_code=400, detail=f"Missing required fields: {', '.join(missing)}")
        raise HTTPException(status_code=400, detail="Invalid request body")
