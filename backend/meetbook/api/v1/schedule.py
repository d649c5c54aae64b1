from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import Field

from meetbook.api.deps import (
    BaseBody,
    bounded,
    get_booking_engine,
    get_slot_service,
    parse_date,
    read_body,
)
from meetbook.core.errors import InvalidWindow
from meetbook.domain import day_of_week
from meetbook.scheduling import BookingEngine, BookingRequest, SlotService, slot_reference

router = APIRouter()


class BookSlotBody(BaseBody):
    date: str
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    participant_name: str = Field(alias="participantName")
    participant_email: str = Field(alias="participantEmail")
    meeting_title: Optional[str] = Field(default=None, alias="meetingTitle")
    title: Optional[str] = None
    meeting_description: Optional[str] = Field(default=None, alias="meetingDescription")
    description: Optional[str] = None


@router.get("/schedule/{host_id}")
async def get_available_slots(
    host_id: str,
    request: Request,
    date: Optional[str] = None,
    timezone: Optional[str] = None,
    slot_service: SlotService = Depends(get_slot_service),
):
    """Public: open slots of a host on one date"""
    day = parse_date(date)
    host, slots = await bounded(request, slot_service.available_slots(host_id, day))
    return {
        "date": day.isoformat(),
        "dayOfWeek": day_of_week(day),
        "hostName": host.full_name,
        "hostEmail": host.email,
        "timezone": timezone or host.timezone,
        "availableSlots": [slot.to_dict() for slot in slots],
    }


@router.post("/schedule/{host_id}/book", status_code=201)
async def book_slot(
    host_id: str,
    request: Request,
    engine: BookingEngine = Depends(get_booking_engine),
):
    """Public: book one of the slots returned by the schedule endpoint"""
    body = await read_body(request, BookSlotBody)
    title = (body.meeting_title or body.title or "").strip()
    if not title:
        raise HTTPException(status_code=400, detail="Missing required fields: meetingTitle")
    day = parse_date(body.date)
    try:
        slot = slot_reference(day, body.start_time, body.end_time)
    except InvalidWindow as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = await bounded(
        request,
        engine.book(
            BookingRequest(
                host_id=host_id,
                slot=slot,
                participant_name=body.participant_name,
                participant_email=body.participant_email,
                title=title,
                description=body.meeting_description or body.description,
            )
        ),
    )
    meeting = result.meeting
    return JSONResponse(
        status_code=201,
        content={
            "message": "Meeting booked successfully",
            "meeting": {
                **meeting.to_dict(),
                "hostName": result.host.full_name,
                "hostEmail": result.host.email,
                "participantName": meeting.booker_name,
                "participantEmail": meeting.booker_email,
                "icsDownloadUrl": result.document_url,
            },
            "icsDownloadUrl": result.document_url,
        },
    )


@router.get("/booking/{host_id}/organizer")
async def get_organizer(
    host_id: str,
    request: Request,
    slot_service: SlotService = Depends(get_slot_service),
):
    """Public: who the booking page is for"""
    try:
        host = await bounded(request, slot_service.get_bookable_host(host_id))
    except HTTPException as e:
        if e.status_code == 403:
            raise HTTPException(status_code=404, detail="Host not found or scheduling not available")
        raise
    return {"id": host.id, "fullName": host.full_name, "email": host.email}
