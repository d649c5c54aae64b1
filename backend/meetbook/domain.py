"""Domain value types shared by the stores, the slot generator and the booking engine.

Stores hand these plain dataclasses to the core instead of ORM rows so that the
SQL and flat-file adapters stay interchangeable.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Optional

from email_validator import EmailNotValidError, validate_email

from meetbook.core.errors import InvalidParticipant, InvalidWindow

MEETING_STATUSES = ("pending", "confirmed", "cancelled", "completed")

# Allowed status transitions; cancellation is the only host-initiated way out
# of pending/confirmed other than completion.
STATUS_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"completed", "cancelled"},
    "cancelled": set(),
    "completed": set(),
}

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


@dataclass
class Host:
    id: str
    full_name: str
    email: str
    has_full_license: bool = False
    timezone: str = "UTC"


@dataclass
class AvailabilityWindow:
    id: str
    host_id: str
    day_of_week: int  # 0 = Sunday ... 6 = Saturday
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    is_active: bool = True
    created_at: Optional[datetime] = None


@dataclass
class WindowSpec:
    """A window as requested by the host, before it has an id."""

    day_of_week: int
    start_time: str
    end_time: str
    is_active: bool = True


@dataclass(frozen=True, order=True)
class BookableSlot:
    date: date
    start_time: str
    end_time: str
    starts_at: datetime  # aware UTC
    ends_at: datetime  # aware UTC

    def to_dict(self) -> dict:
        return {
            "startTime": self.start_time,
            "endTime": self.end_time,
            "datetime": self.starts_at.isoformat().replace("+00:00", "Z"),
        }


@dataclass(frozen=True)
class SlotReference:
    date: date
    start_time: str
    end_time: str


@dataclass
class RetiredSlot:
    host_id: str
    slot_date: date
    start_time: str
    end_time: str
    booked_by_name: Optional[str] = None
    booked_by_email: Optional[str] = None
    meeting_id: Optional[str] = None


@dataclass
class Participant:
    name: str
    email: str


@dataclass
class Meeting:
    id: str
    host_id: str
    title: str
    start_time: datetime  # aware UTC
    end_time: datetime  # aware UTC
    description: str = ""
    timezone: str = "UTC"
    status: str = "pending"
    booker_name: Optional[str] = None
    booker_email: Optional[str] = None
    meeting_url: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def participant(self) -> Optional[Participant]:
        if self.booker_email:
            return Participant(name=self.booker_name or self.booker_email, email=self.booker_email)
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "hostId": self.host_id,
            "title": self.title,
            "description": self.description,
            "startTime": to_iso_utc(self.start_time),
            "endTime": to_iso_utc(self.end_time),
            "timezone": self.timezone,
            "status": self.status,
            "bookerName": self.booker_name,
            "bookerEmail": self.booker_email,
            "meetingUrl": self.meeting_url,
            "createdAt": to_iso_utc(self.created_at),
        }


# ──────────────────────────────────────────────────────────────────────────────
# Time helpers
# ──────────────────────────────────────────────────────────────────────────────


def parse_hhmm(value: str) -> time:
    """Parse a strict 24h ``HH:MM`` string."""
    match = _HHMM.match((value or "").strip())
    if not match:
        raise InvalidWindow(f"Invalid time {value!r}; expected HH:MM (24h)")
    return time(int(match.group(1)), int(match.group(2)))


def minutes_of(value: str) -> int:
    t = parse_hhmm(value)
    return t.hour * 60 + t.minute


def format_minutes(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_naive_utc(value: datetime) -> datetime:
    return ensure_utc(value).replace(tzinfo=None)


def to_iso_utc(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return ensure_utc(value).isoformat().replace("+00:00", "Z")


def day_of_week(value: date) -> int:
    """Sunday = 0 ... Saturday = 6."""
    return (value.weekday() + 1) % 7


# ──────────────────────────────────────────────────────────────────────────────
# Validation
# ──────────────────────────────────────────────────────────────────────────────


def validate_window(spec: WindowSpec) -> WindowSpec:
    """Validate a window definition; windows may not cross midnight."""
    if isinstance(spec.day_of_week, bool) or not isinstance(spec.day_of_week, int):
        raise InvalidWindow("dayOfWeek must be an integer between 0 (Sunday) and 6 (Saturday)")
    if not 0 <= spec.day_of_week <= 6:
        raise InvalidWindow("dayOfWeek must be between 0 (Sunday) and 6 (Saturday)")
    start = parse_hhmm(spec.start_time)
    end = parse_hhmm(spec.end_time)
    if start >= end:
        raise InvalidWindow(
            f"startTime {spec.start_time} must be earlier than endTime {spec.end_time}"
        )
    return WindowSpec(
        day_of_week=spec.day_of_week,
        start_time=start.strftime("%H:%M"),
        end_time=end.strftime("%H:%M"),
        is_active=bool(spec.is_active),
    )


def validate_participant(name: Optional[str], email: Optional[str]) -> Participant:
    """Return a normalized participant or raise InvalidParticipant."""
    clean_name = (name or "").strip()
    clean_email = (email or "").strip()
    if not clean_name:
        raise InvalidParticipant("Participant name is required")
    if not clean_email:
        raise InvalidParticipant("Participant email is required")
    try:
        result = validate_email(clean_email, check_deliverability=False)
    except EmailNotValidError as e:
        raise InvalidParticipant(f"Invalid participant email: {e}") from e
    return Participant(name=clean_name, email=result.normalized)
