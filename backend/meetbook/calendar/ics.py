"""iCalendar rendering for meetings (single invites and whole-host exports)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from icalendar import Alarm, Calendar, Event, vCalAddress, vText

from meetbook.domain import Meeting, Participant, ensure_utc

PRODID = "-//Meetbook//Meeting//EN"
REMINDER_BEFORE = timedelta(minutes=15)

_ICS_STATUS = {
    "pending": "TENTATIVE",
    "confirmed": "CONFIRMED",
    "completed": "CONFIRMED",
    "cancelled": "CANCELLED",
}


@dataclass
class ParsedEvent:
    uid: str
    summary: str
    start: datetime
    end: datetime
    organizer: Optional[str] = None
    attendees: tuple[str, ...] = ()


def _address(person: Participant) -> vCalAddress:
    address = vCalAddress(f"mailto:{person.email}")
    address.params["cn"] = vText(person.name)
    return address


def _calendar(method: str) -> Calendar:
    cal = Calendar()
    cal.add("prodid", PRODID)
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", method)
    return cal


class CalendarExporter:
    """Builds RFC 5545 documents from meetings. Pure: no I/O."""

    def __init__(self, uid_domain: str = "meetbook.local"):
        self.uid_domain = uid_domain

    def event_uid(self, meeting: Meeting) -> str:
        return f"{meeting.id}@{self.uid_domain}"

    def build_event(
        self,
        meeting: Meeting,
        organizer: Participant,
        participant: Optional[Participant] = None,
        now: Optional[datetime] = None,
    ) -> Event:
        event = Event()
        event.add("uid", self.event_uid(meeting))
        event.add("dtstart", ensure_utc(meeting.start_time))
        event.add("dtend", ensure_utc(meeting.end_time))
        event.add("dtstamp", ensure_utc(now or datetime.now(timezone.utc)))
        event.add("summary", meeting.title)

        description = meeting.description or ""
        if meeting.meeting_url:
            join_line = f"Join meeting: {meeting.meeting_url}"
            description = f"{description}\n\n{join_line}" if description else join_line
            event.add("location", f"Video Conference - {meeting.meeting_url}")
        event.add("description", description)

        event.add("status", _ICS_STATUS.get(meeting.status, "CONFIRMED"))
        event.add("transp", "OPAQUE")
        event.add("organizer", _address(organizer))

        participant = participant or meeting.participant
        if participant is not None:
            attendee = _address(participant)
            attendee.params["role"] = vText("REQ-PARTICIPANT")
            attendee.params["rsvp"] = vText("TRUE")
            event.add("attendee", attendee)

        alarm = Alarm()
        alarm.add("action", "DISPLAY")
        alarm.add("trigger", -REMINDER_BEFORE)
        alarm.add("description", f"Meeting reminder: {meeting.title}")
        event.add_component(alarm)
        return event

    def render_meeting(
        self,
        meeting: Meeting,
        organizer: Participant,
        participant: Optional[Participant] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """Render a single-meeting invite (METHOD:REQUEST)."""
        cal = _calendar("REQUEST")
        cal.add_component(self.build_event(meeting, organizer, participant, now))
        return cal.to_ical().decode("utf-8")

    def render_host_calendar(
        self,
        meetings: Iterable[Meeting],
        organizer: Participant,
        now: Optional[datetime] = None,
    ) -> str:
        """Render every meeting of a host into one calendar (METHOD:PUBLISH)."""
        cal = _calendar("PUBLISH")
        stamp = now or datetime.now(timezone.utc)
        for meeting in meetings:
            cal.add_component(self.build_event(meeting, organizer, now=stamp))
        return cal.to_ical().decode("utf-8")


def parse_events(text: str) -> list[ParsedEvent]:
    """Read the VEVENTs back out of an iCalendar document."""
    cal = Calendar.from_ical(text)
    events: list[ParsedEvent] = []
    for component in cal.walk("VEVENT"):
        organizer = component.get("organizer")
        attendees = component.get("attendee") or []
        if not isinstance(attendees, list):
            attendees = [attendees]
        events.append(
            ParsedEvent(
                uid=str(component.get("uid")),
                summary=str(component.get("summary")),
                start=ensure_utc(component.decoded("dtstart")),
                end=ensure_utc(component.decoded("dtend")),
                organizer=str(organizer) if organizer else None,
                attendees=tuple(str(a) for a in attendees),
            )
        )
    return events
