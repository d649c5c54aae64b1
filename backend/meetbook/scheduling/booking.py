from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from meetbook.calendar.cache import DocumentCache
from meetbook.calendar.ics import CalendarExporter
from meetbook.core.errors import (
    HostNotBookable,
    InvalidMeeting,
    InvalidTransition,
    NotBookable,
    NotFound,
    SlotUnavailable,
)
from meetbook.domain import (
    STATUS_TRANSITIONS,
    Host,
    Meeting,
    Participant,
    RetiredSlot,
    SlotReference,
    ensure_utc,
    parse_hhmm,
    validate_participant,
)
from meetbook.scheduling.locks import HostLockRegistry
from meetbook.scheduling.slots import SlotService
from meetbook.stores.base import SchedulingStore

logger = logging.getLogger(__name__)


@dataclass
class BookingRequest:
    host_id: str
    slot: SlotReference
    participant_name: Optional[str]
    participant_email: Optional[str]
    title: str
    description: Optional[str] = None


@dataclass
class BookingResult:
    meeting: Meeting
    host: Host
    document: str
    document_url: str


def organizer_of(host: Host) -> Participant:
    return Participant(name=host.full_name, email=host.email)


class BookingEngine:
    """Write path: turns a slot (or a host's own request) into a Meeting.

    Slot validation and meeting creation for one host run under that host's
    lock, and the store writes the meeting together with the retired slot,
    so a slot can back at most one booking.
    """

    def __init__(
        self,
        store: SchedulingStore,
        locks: HostLockRegistry,
        exporter: CalendarExporter,
        cache: Optional[DocumentCache] = None,
        public_base_url: str = "http://localhost:8000",
        slot_minutes: int = 30,
        default_meeting_minutes: int = 60,
    ):
        self.store = store
        self.locks = locks
        self.exporter = exporter
        self.cache = cache
        self.public_base_url = public_base_url.rstrip("/")
        self.slots = SlotService(store, slot_minutes=slot_minutes)
        self.default_meeting_minutes = default_meeting_minutes

    # ==================== LINKS ====================

    def meeting_url(self, meeting_id: str) -> str:
        return f"{self.public_base_url}/meeting/{meeting_id}"

    def document_url(self, meeting_id: str) -> str:
        return f"{self.public_base_url}/ics/{meeting_id}.ics"

    # ==================== PUBLIC BOOKING ====================

    async def book(self, request: BookingRequest, now: Optional[datetime] = None) -> BookingResult:
        """Book a public slot.

        Checks run in order: host bookable, slot currently offered,
        participant valid. The meeting and its retired slot are written
        as one unit.
        """
        host = await self.store.resolve_host(request.host_id)
        if host is None or not host.has_full_license:
            raise HostNotBookable(f"Host {request.host_id} not found or scheduling not available")

        slot_ref = request.slot
        async with self.locks.hold(host.id):
            offered = await self.slots.slots_for_host(host, slot_ref.date, now)
            chosen = next(
                (
                    s for s in offered
                    if s.start_time == slot_ref.start_time and s.end_time == slot_ref.end_time
                ),
                None,
            )
            if chosen is None:
                raise SlotUnavailable(
                    f"Slot {slot_ref.date} {slot_ref.start_time}-{slot_ref.end_time} is not available"
                )

            participant = validate_participant(request.participant_name, request.participant_email)

            meeting_id = uuid.uuid4().hex
            meeting = Meeting(
                id=meeting_id,
                host_id=host.id,
                title=request.title.strip(),
                description=(request.description or f"Meeting with {participant.name}").strip(),
                start_time=chosen.starts_at,
                end_time=chosen.ends_at,
                timezone=host.timezone,
                status="confirmed",
                booker_name=participant.name,
                booker_email=participant.email,
                meeting_url=self.meeting_url(meeting_id),
            )
            retired = RetiredSlot(
                host_id=host.id,
                slot_date=chosen.date,
                start_time=chosen.start_time,
                end_time=chosen.end_time,
                booked_by_name=participant.name,
                booked_by_email=participant.email,
                meeting_id=meeting_id,
            )
            await self.store.persist_meeting(meeting, retired)

        logger.info(
            f"Booked meeting {meeting.id} for host {host.id} on "
            f"{chosen.date} {chosen.start_time}-{chosen.end_time}"
        )
        return await self._finish(meeting, host, participant)

    # ==================== DIRECT SCHEDULING ====================

    async def schedule_direct(
        self,
        host_id: str,
        title: str,
        start: datetime,
        end: Optional[datetime] = None,
        description: Optional[str] = None,
        timezone_name: Optional[str] = None,
        participant_name: Optional[str] = None,
        participant_email: Optional[str] = None,
    ) -> BookingResult:
        """Create a meeting on the host's own calendar, without slot checks."""
        host = await self.store.resolve_host(host_id)
        if host is None:
            raise NotFound(f"Host {host_id} not found")

        if not (title or "").strip():
            raise InvalidMeeting("Title is required")
        starts_at = ensure_utc(start)
        ends_at = ensure_utc(end) if end else starts_at + timedelta(minutes=self.default_meeting_minutes)
        if ends_at <= starts_at:
            raise InvalidMeeting("Meeting end time must be after its start time")

        participant = None
        if participant_name or participant_email:
            participant = validate_participant(participant_name or participant_email, participant_email)

        meeting_id = uuid.uuid4().hex
        meeting = Meeting(
            id=meeting_id,
            host_id=host.id,
            title=title.strip(),
            description=(description or "").strip(),
            start_time=starts_at,
            end_time=ends_at,
            timezone=timezone_name or host.timezone,
            status="confirmed",
            booker_name=participant.name if participant else None,
            booker_email=participant.email if participant else None,
            meeting_url=self.meeting_url(meeting_id),
        )
        async with self.locks.hold(host.id):
            await self.store.persist_meeting(meeting)

        logger.info(f"Host {host.id} scheduled meeting {meeting.id} at {starts_at.isoformat()}")
        return await self._finish(meeting, host, participant)

    # ==================== LOOKUPS ====================

    async def get_meeting(self, meeting_id: str) -> tuple[Meeting, Host]:
        """Get meeting by ID, with its host"""
        meeting = await self.store.get_meeting(meeting_id)
        if meeting is None:
            raise NotFound(f"Meeting {meeting_id} not found")
        host = await self.store.resolve_host(meeting.host_id)
        if host is None:
            raise NotFound(f"Meeting {meeting_id} not found")
        return meeting, host

    async def list_meetings(self, host_id: str, status: Optional[str] = None) -> list[Meeting]:
        """Get a host's meetings, earliest first, optionally filtered by status"""
        host = await self.store.resolve_host(host_id)
        if host is None:
            raise NotFound(f"Host {host_id} not found")
        meetings = await self.store.list_meetings(host.id)
        if status:
            meetings = [m for m in meetings if m.status == status]
        return meetings

    # ==================== LIFECYCLE ====================

    async def _owned_meeting(self, host_id: str, meeting_id: str) -> Meeting:
        meeting = await self.store.get_meeting(meeting_id)
        if meeting is None or meeting.host_id != host_id:
            raise NotFound(f"Meeting {meeting_id} not found")
        return meeting

    async def _transition(self, host_id: str, meeting_id: str, status: str) -> Meeting:
        # Unknown ids never reach the lock registry
        await self._owned_meeting(host_id, meeting_id)
        async with self.locks.hold(host_id):
            meeting = await self._owned_meeting(host_id, meeting_id)
            if status not in STATUS_TRANSITIONS.get(meeting.status, set()):
                raise InvalidTransition(f"Cannot move meeting from {meeting.status} to {status}")
            updated = await self.store.update_meeting_status(meeting_id, host_id, status)
        if updated is None:
            raise NotFound(f"Meeting {meeting_id} not found")
        await self._discard_document(meeting_id)
        return updated

    async def cancel(self, host_id: str, meeting_id: str) -> Meeting:
        """Host-initiated cancellation. The consumed slot is not reopened."""
        meeting = await self._transition(host_id, meeting_id, "cancelled")
        logger.info(f"Host {host_id} cancelled meeting {meeting_id}")
        return meeting

    async def complete(self, host_id: str, meeting_id: str) -> Meeting:
        return await self._transition(host_id, meeting_id, "completed")

    async def delete(self, host_id: str, meeting_id: str) -> None:
        """Hard delete. The consumed slot is not reopened."""
        await self._owned_meeting(host_id, meeting_id)
        async with self.locks.hold(host_id):
            deleted = await self.store.delete_meeting(meeting_id, host_id)
        if not deleted:
            raise NotFound(f"Meeting {meeting_id} not found")
        await self._discard_document(meeting_id)
        logger.info(f"Host {host_id} deleted meeting {meeting_id}")

    # ==================== DOCUMENTS ====================

    async def document_for(self, meeting_id: str) -> str:
        """Return the invite for a meeting, from cache or freshly rendered."""
        if self.cache is not None:
            try:
                cached = await asyncio.to_thread(self.cache.load, meeting_id)
            except ValueError:
                raise NotFound(f"Meeting {meeting_id} not found")
            if cached is not None:
                return cached
        meeting = await self.store.get_meeting(meeting_id)
        if meeting is None:
            raise NotFound(f"Meeting {meeting_id} not found")
        host = await self.store.resolve_host(meeting.host_id)
        if host is None:
            raise NotFound(f"Host {meeting.host_id} not found")
        text = self.exporter.render_meeting(meeting, organizer_of(host))
        await self._store_document(meeting.id, text)
        return text

    async def export_host_calendar(self, host_id: str) -> str:
        """Render every meeting of a licensed host into one calendar."""
        host = await self.store.resolve_host(host_id)
        if host is None:
            raise NotFound(f"Host {host_id} not found")
        if not host.has_full_license:
            raise NotBookable(f"Host {host_id} does not have scheduling enabled")
        meetings = await self.store.list_meetings(host.id)
        return self.exporter.render_host_calendar(meetings, organizer_of(host))

    async def _finish(self, meeting: Meeting, host: Host, participant: Optional[Participant]) -> BookingResult:
        text = self.exporter.render_meeting(meeting, organizer_of(host), participant)
        await self._store_document(meeting.id, text)
        return BookingResult(
            meeting=meeting,
            host=host,
            document=text,
            document_url=self.document_url(meeting.id),
        )

    async def _store_document(self, meeting_id: str, text: str) -> None:
        if self.cache is None:
            return
        try:
            await asyncio.to_thread(self.cache.save, meeting_id, text)
        except OSError as e:
            # The invite can always be regenerated from the stored meeting
            logger.warning(f"Could not cache invite for meeting {meeting_id}: {e}")

    async def _discard_document(self, meeting_id: str) -> None:
        if self.cache is not None:
            await asyncio.to_thread(self.cache.discard, meeting_id)


def slot_reference(day: date, start_time: str, end_time: str) -> SlotReference:
    """Normalize a requested slot (``HH:MM`` strings) into a SlotReference."""
    start = parse_hhmm(start_time)
    end = parse_hhmm(end_time)
    return SlotReference(date=day, start_time=start.strftime("%H:%M"), end_time=end.strftime("%H:%M"))
