from __future__ import annotations

from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import Field

from meetbook.api.deps import BaseBody, bounded, get_availability_service, read_body
from meetbook.domain import AvailabilityWindow, WindowSpec
from meetbook.scheduling import AvailabilityService

router = APIRouter()


class WindowBody(BaseBody):
    # Loosely typed so that bad values reach window validation and come back as 400
    day_of_week: Any = Field(alias="dayOfWeek")
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    is_active: Optional[bool] = Field(default=True, alias="isActive")

    def to_spec(self) -> WindowSpec:
        return WindowSpec(
            day_of_week=self.day_of_week,
            start_time=self.start_time,
            end_time=self.end_time,
            is_active=True if self.is_active is None else self.is_active,
        )


class ReplaceWindowsBody(BaseBody):
    availability: List[WindowBody]


def _window_dict(window: AvailabilityWindow) -> dict:
    return {
        "id": window.id,
        "dayOfWeek": window.day_of_week,
        "startTime": window.start_time,
        "endTime": window.end_time,
        "isActive": window.is_active,
    }


@router.get("/{host_id}/availability")
async def list_availability(
    host_id: str,
    request: Request,
    service: AvailabilityService = Depends(get_availability_service),
):
    """Get a host's active weekly windows"""
    windows = await bounded(request, service.list_windows(host_id))
    return {
        "hostId": host_id,
        "total": len(windows),
        "availability": [_window_dict(w) for w in windows],
    }


@router.post("/{host_id}/availability", status_code=201)
async def add_availability(
    host_id: str,
    request: Request,
    service: AvailabilityService = Depends(get_availability_service),
):
    """Add one weekly window"""
    body = await read_body(request, WindowBody)
    spec = body.to_spec()
    window = await bounded(
        request,
        service.add_window(host_id, spec.day_of_week, spec.start_time, spec.end_time, spec.is_active),
    )
    return _window_dict(window)


@router.put("/{host_id}/availability")
async def replace_availability(
    host_id: str,
    request: Request,
    service: AvailabilityService = Depends(get_availability_service),
):
    """Replace every weekly window of a host"""
    body = await read_body(request, ReplaceWindowsBody)
    windows = await bounded(
        request,
        service.replace_windows(host_id, [w.to_spec() for w in body.availability]),
    )
    return {
        "message": "Availability updated successfully",
        "availability": [_window_dict(w) for w in windows],
    }


@router.delete("/{host_id}/availability/{window_id}", status_code=204)
async def delete_availability(
    host_id: str,
    window_id: str,
    request: Request,
    service: AvailabilityService = Depends(get_availability_service),
):
    """Delete a window owned by the host"""
    await bounded(request, service.remove_window(window_id, host_id))
    return Response(status_code=204)
