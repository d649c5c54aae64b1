from __future__ import annotations

from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from pydantic import Field

from meetbook.api.deps import BaseBody, bounded, get_booking_engine, parse_datetime, read_body
from meetbook.domain import MEETING_STATUSES, Host, Meeting
from meetbook.scheduling import BookingEngine

router = APIRouter()


class ScheduleMeetingBody(BaseBody):
    title: str
    start_time: str = Field(alias="startTime")
    end_time: Optional[str] = Field(default=None, alias="endTime")
    description: Optional[str] = None
    timezone: Optional[str] = None
    participant_name: Optional[str] = Field(default=None, alias="participantName")
    participant_email: Optional[str] = Field(default=None, alias="participantEmail")


def _meeting_dict(meeting: Meeting, engine: BookingEngine, host: Optional[Host] = None) -> dict:
    data = meeting.to_dict()
    data["icsDownloadUrl"] = engine.document_url(meeting.id)
    if host is not None:
        data["hostName"] = host.full_name
        data["hostEmail"] = host.email
    return data


def _zone(name: Optional[str]) -> Optional[ZoneInfo]:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise HTTPException(status_code=400, detail=f"Unknown timezone: {name}")


# ==================== HOST CALENDAR ====================


@router.get("/hosts/{host_id}/meetings/export")
async def export_meetings(
    host_id: str,
    request: Request,
    engine: BookingEngine = Depends(get_booking_engine),
):
    """Download every meeting of a host as one iCalendar file"""
    text = await bounded(request, engine.export_host_calendar(host_id))
    return Response(
        content=text,
        media_type="text/calendar",
        headers={"Content-Disposition": 'attachment; filename="calendar.ics"'},
    )


@router.get("/hosts/{host_id}/meetings")
async def list_meetings(
    host_id: str,
    request: Request,
    status: Optional[str] = None,
    engine: BookingEngine = Depends(get_booking_engine),
):
    """Get a host's meetings, earliest first"""
    if status and status not in MEETING_STATUSES:
        raise HTTPException(status_code=400, detail=f"Unknown status: {status}")
    meetings = await bounded(request, engine.list_meetings(host_id, status))
    return {
        "hostId": host_id,
        "total": len(meetings),
        "meetings": [_meeting_dict(m, engine) for m in meetings],
    }


@router.post("/hosts/{host_id}/meetings", status_code=201)
async def schedule_meeting(
    host_id: str,
    request: Request,
    engine: BookingEngine = Depends(get_booking_engine),
):
    """Put a meeting directly on the host's calendar"""
    body = await read_body(request, ScheduleMeetingBody)
    zone = _zone(body.timezone)
    start = parse_datetime(body.start_time, "startTime")
    end = parse_datetime(body.end_time, "endTime") if body.end_time else None
    # Wall-clock times without an offset are read in the supplied timezone
    if zone is not None:
        if start.tzinfo is None:
            start = start.replace(tzinfo=zone)
        if end is not None and end.tzinfo is None:
            end = end.replace(tzinfo=zone)

    result = await bounded(
        request,
        engine.schedule_direct(
            host_id,
            title=body.title,
            start=start,
            end=end,
            description=body.description,
            timezone_name=body.timezone,
            participant_name=body.participant_name,
            participant_email=body.participant_email,
        ),
    )
    return JSONResponse(
        status_code=201,
        content={
            "message": "Meeting scheduled successfully",
            "meeting": _meeting_dict(result.meeting, engine, result.host),
            "icsDownloadUrl": result.document_url,
        },
    )


@router.post("/hosts/{host_id}/meetings/{meeting_id}/cancel")
async def cancel_meeting(
    host_id: str,
    meeting_id: str,
    request: Request,
    engine: BookingEngine = Depends(get_booking_engine),
):
    """Cancel a meeting; its slot stays closed"""
    meeting = await bounded(request, engine.cancel(host_id, meeting_id))
    return {"message": "Meeting cancelled", "meeting": _meeting_dict(meeting, engine)}


@router.post("/hosts/{host_id}/meetings/{meeting_id}/complete")
async def complete_meeting(
    host_id: str,
    meeting_id: str,
    request: Request,
    engine: BookingEngine = Depends(get_booking_engine),
):
    """Mark a confirmed meeting as completed"""
    meeting = await bounded(request, engine.complete(host_id, meeting_id))
    return {"message": "Meeting completed", "meeting": _meeting_dict(meeting, engine)}


@router.delete("/hosts/{host_id}/meetings/{meeting_id}", status_code=204)
async def delete_meeting(
    host_id: str,
    meeting_id: str,
    request: Request,
    engine: BookingEngine = Depends(get_booking_engine),
):
    """Hard-delete a meeting owned by the host"""
    await bounded(request, engine.delete(host_id, meeting_id))
    return Response(status_code=204)


# ==================== PUBLIC ====================


@router.get("/meetings/{meeting_id}")
async def get_meeting(
    meeting_id: str,
    request: Request,
    engine: BookingEngine = Depends(get_booking_engine),
):
    """Public meeting details, as linked from the invite"""
    meeting, host = await bounded(request, engine.get_meeting(meeting_id))
    return _meeting_dict(meeting, engine, host)
