from __future__ import annotations

import asyncio
import json
import logging
import os
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence

from meetbook.core.errors import InvalidMeeting, PersistenceFailure, SlotUnavailable
from meetbook.domain import (
    AvailabilityWindow,
    Host,
    Meeting,
    RetiredSlot,
    WindowSpec,
    ensure_utc,
    to_iso_utc,
)

logger = logging.getLogger(__name__)

_TABLES = ("users", "availability", "meetings", "booking_slots")


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def _host(data: dict[str, Any]) -> Host:
    return Host(
        id=data["id"],
        full_name=data["full_name"],
        email=data["email"],
        has_full_license=bool(data.get("has_full_license", False)),
        timezone=data.get("timezone") or "UTC",
    )


def _window(data: dict[str, Any]) -> AvailabilityWindow:
    return AvailabilityWindow(
        id=data["id"],
        host_id=data["host_id"],
        day_of_week=int(data["day_of_week"]),
        start_time=data["start_time"],
        end_time=data["end_time"],
        is_active=bool(data.get("is_active", True)),
        created_at=_parse_dt(data.get("created_at")),
    )


def _meeting(data: dict[str, Any]) -> Meeting:
    return Meeting(
        id=data["id"],
        host_id=data["host_id"],
        title=data["title"],
        description=data.get("description") or "",
        start_time=_parse_dt(data["start_time"]),
        end_time=_parse_dt(data["end_time"]),
        timezone=data.get("timezone") or "UTC",
        status=data.get("status", "pending"),
        booker_name=data.get("booker_name"),
        booker_email=data.get("booker_email"),
        meeting_url=data.get("meeting_url"),
        created_at=_parse_dt(data.get("created_at")) or datetime.now(timezone.utc),
    )


def _meeting_row(meeting: Meeting) -> dict[str, Any]:
    return {
        "id": meeting.id,
        "host_id": meeting.host_id,
        "title": meeting.title,
        "description": meeting.description,
        "start_time": to_iso_utc(meeting.start_time),
        "end_time": to_iso_utc(meeting.end_time),
        "timezone": meeting.timezone,
        "status": meeting.status,
        "booker_name": meeting.booker_name,
        "booker_email": meeting.booker_email,
        "meeting_url": meeting.meeting_url,
        "created_at": to_iso_utc(meeting.created_at),
    }


def _retired(data: dict[str, Any]) -> RetiredSlot:
    return RetiredSlot(
        host_id=data["host_id"],
        slot_date=date.fromisoformat(data["slot_date"]),
        start_time=data["start_time"],
        end_time=data["end_time"],
        booked_by_name=data.get("booked_by_name"),
        booked_by_email=data.get("booked_by_email"),
        meeting_id=data.get("meeting_id"),
    )


def _now_iso() -> str:
    return to_iso_utc(datetime.now(timezone.utc))


class JsonFileStore:
    """Flat-file adapter keeping every table in one JSON document.

    Keeping all tables in a single file lets a booking write the meeting and
    its retired slot with one atomic ``os.replace``. All writes go through
    ``self._lock`` so read-check-write sequences cannot interleave.
    """

    name = "json"

    def __init__(self, data_dir: Path, file_name: str = "meetbook.json"):
        self.path = Path(data_dir) / file_name
        self._lock = asyncio.Lock()

    async def open(self) -> None:
        try:
            await asyncio.to_thread(self._ensure_file)
        except OSError as e:
            raise PersistenceFailure(f"Cannot initialize data file {self.path}") from e

    async def close(self) -> None:
        return None

    def _ensure_file(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self._write_sync({table: [] for table in _TABLES})
            logger.info(f"Created data file {self.path}")

    def _read_sync(self) -> dict[str, list[dict[str, Any]]]:
        if not self.path.exists():
            return {table: [] for table in _TABLES}
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        for table in _TABLES:
            data.setdefault(table, [])
        return data

    def _write_sync(self, data: dict[str, list[dict[str, Any]]]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.path)

    async def _read(self) -> dict[str, list[dict[str, Any]]]:
        try:
            return await asyncio.to_thread(self._read_sync)
        except (OSError, ValueError) as e:
            raise PersistenceFailure(f"Cannot read data file {self.path}") from e

    async def _write(self, data: dict[str, list[dict[str, Any]]]) -> None:
        try:
            await asyncio.to_thread(self._write_sync, data)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceFailure(f"Cannot write data file {self.path}") from e

    # ==================== HOSTS ====================

    async def resolve_host(self, host_id: str) -> Optional[Host]:
        data = await self._read()
        row = next((u for u in data["users"] if str(u["id"]) == str(host_id)), None)
        return _host(row) if row else None

    async def create_host(
        self,
        email: str,
        full_name: str,
        has_full_license: bool = False,
        timezone: str = "UTC",
        host_id: Optional[str] = None,
    ) -> Host:
        row = {
            "id": host_id or uuid.uuid4().hex,
            "email": email,
            "full_name": full_name,
            "has_full_license": has_full_license,
            "timezone": timezone,
            "created_at": _now_iso(),
        }
        async with self._lock:
            data = await self._read()
            if any(u["email"] == email or u["id"] == row["id"] for u in data["users"]):
                raise PersistenceFailure(f"Host {email} already exists")
            data["users"].append(row)
            await self._write(data)
        return _host(row)

    # ==================== AVAILABILITY ====================

    async def load_active_windows(self, host_id: str, day_of_week: int) -> list[AvailabilityWindow]:
        windows = await self.list_windows(host_id)
        return [w for w in windows if w.day_of_week == day_of_week]

    async def list_windows(self, host_id: str) -> list[AvailabilityWindow]:
        data = await self._read()
        windows = [
            _window(row)
            for row in data["availability"]
            if row["host_id"] == host_id and row.get("is_active", True)
        ]
        return sorted(windows, key=lambda w: (w.day_of_week, w.start_time))

    @staticmethod
    def _window_row(host_id: str, spec: WindowSpec) -> dict[str, Any]:
        return {
            "id": uuid.uuid4().hex,
            "host_id": host_id,
            "day_of_week": spec.day_of_week,
            "start_time": spec.start_time,
            "end_time": spec.end_time,
            "is_active": spec.is_active,
            "created_at": _now_iso(),
        }

    async def add_window(self, host_id: str, spec: WindowSpec) -> AvailabilityWindow:
        row = self._window_row(host_id, spec)
        async with self._lock:
            data = await self._read()
            data["availability"].append(row)
            await self._write(data)
        return _window(row)

    async def replace_windows(self, host_id: str, specs: Sequence[WindowSpec]) -> list[AvailabilityWindow]:
        rows = [self._window_row(host_id, spec) for spec in specs]
        async with self._lock:
            data = await self._read()
            data["availability"] = [r for r in data["availability"] if r["host_id"] != host_id] + rows
            await self._write(data)
        return await self.list_windows(host_id)

    async def remove_window(self, window_id: str, host_id: str) -> bool:
        async with self._lock:
            data = await self._read()
            remaining = [
                r for r in data["availability"]
                if not (r["id"] == window_id and r["host_id"] == host_id)
            ]
            if len(remaining) == len(data["availability"]):
                return False
            data["availability"] = remaining
            await self._write(data)
        return True

    # ==================== MEETINGS ====================

    async def load_active_meetings(self, host_id: str, start: datetime, end: datetime) -> list[Meeting]:
        data = await self._read()
        start, end = ensure_utc(start), ensure_utc(end)
        meetings = [
            _meeting(row)
            for row in data["meetings"]
            if row["host_id"] == host_id and row.get("status") != "cancelled"
        ]
        return sorted(
            (m for m in meetings if m.start_time < end and m.end_time > start),
            key=lambda m: m.start_time,
        )

    async def load_retired_slots(self, host_id: str, slot_date: date) -> list[RetiredSlot]:
        data = await self._read()
        return [
            _retired(row)
            for row in data["booking_slots"]
            if row["host_id"] == host_id
            and row["slot_date"] == slot_date.isoformat()
            and row.get("is_booked", True)
        ]

    async def persist_meeting(self, meeting: Meeting, retired_slot: Optional[RetiredSlot] = None) -> Meeting:
        if ensure_utc(meeting.end_time) <= ensure_utc(meeting.start_time):
            raise InvalidMeeting("Meeting must end after it starts")
        row = _meeting_row(meeting)
        async with self._lock:
            data = await self._read()
            for existing in data["meetings"]:
                if (
                    existing["host_id"] == meeting.host_id
                    and existing.get("status") != "cancelled"
                    and _parse_dt(existing["start_time"]) == ensure_utc(meeting.start_time)
                ):
                    raise SlotUnavailable("The requested time is no longer available")
            if retired_slot is not None:
                slot_key = (retired_slot.host_id, retired_slot.slot_date.isoformat(), retired_slot.start_time)
                if any(
                    (s["host_id"], s["slot_date"], s["start_time"]) == slot_key
                    for s in data["booking_slots"]
                ):
                    raise SlotUnavailable("The requested time is no longer available")
                data["booking_slots"].append(
                    {
                        "id": uuid.uuid4().hex,
                        "host_id": retired_slot.host_id,
                        "slot_date": retired_slot.slot_date.isoformat(),
                        "start_time": retired_slot.start_time,
                        "end_time": retired_slot.end_time,
                        "is_booked": True,
                        "booked_by_name": retired_slot.booked_by_name,
                        "booked_by_email": retired_slot.booked_by_email,
                        "meeting_id": meeting.id,
                        "created_at": _now_iso(),
                    }
                )
            data["meetings"].append(row)
            await self._write(data)
        return meeting

    async def get_meeting(self, meeting_id: str) -> Optional[Meeting]:
        data = await self._read()
        row = next((m for m in data["meetings"] if m["id"] == meeting_id), None)
        return _meeting(row) if row else None

    async def list_meetings(self, host_id: str) -> list[Meeting]:
        data = await self._read()
        meetings = [_meeting(row) for row in data["meetings"] if row["host_id"] == host_id]
        return sorted(meetings, key=lambda m: m.start_time)

    async def update_meeting_status(self, meeting_id: str, host_id: str, status: str) -> Optional[Meeting]:
        async with self._lock:
            data = await self._read()
            row = next(
                (m for m in data["meetings"] if m["id"] == meeting_id and m["host_id"] == host_id),
                None,
            )
            if row is None:
                return None
            row["status"] = status
            await self._write(data)
        return _meeting(row)

    async def delete_meeting(self, meeting_id: str, host_id: str) -> bool:
        async with self._lock:
            data = await self._read()
            remaining = [
                m for m in data["meetings"]
                if not (m["id"] == meeting_id and m["host_id"] == host_id)
            ]
            if len(remaining) == len(data["meetings"]):
                return False
            data["meetings"] = remaining
            for slot in data["booking_slots"]:
                if slot.get("meeting_id") == meeting_id:
                    slot["meeting_id"] = None
            await self._write(data)
        return True
