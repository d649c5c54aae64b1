from fastapi import APIRouter, Depends, Request, Response

from meetbook.api.deps import bounded, get_booking_engine
from meetbook.scheduling import BookingEngine

router = APIRouter()


@router.get("/{meeting_id}.ics")
async def download_invite(
    meeting_id: str,
    request: Request,
    engine: BookingEngine = Depends(get_booking_engine),
):
    """Serve the invite for a meeting (cached copy or regenerated)"""
    text = await bounded(request, engine.document_for(meeting_id))
    return Response(
        content=text,
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="meeting-{meeting_id}.ics"'},
    )
