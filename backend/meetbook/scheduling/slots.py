from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING, Iterable, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from meetbook.core.errors import NotBookable, NotFound
from meetbook.domain import (
    AvailabilityWindow,
    BookableSlot,
    Host,
    RetiredSlot,
    day_of_week,
    ensure_utc,
    format_minutes,
    minutes_of,
)

if TYPE_CHECKING:
    from meetbook.stores.base import SchedulingStore

logger = logging.getLogger(__name__)

Interval = tuple[datetime, datetime]


def host_zone(host: Host) -> ZoneInfo:
    try:
        return ZoneInfo(host.timezone or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {host.timezone!r} for host {host.id}; using UTC")
        return ZoneInfo("UTC")


def local_instant(day: date, hhmm_minutes: int, zone: ZoneInfo) -> datetime:
    """Return the UTC instant of a local wall-clock time on ``day``."""
    wall = datetime(day.year, day.month, day.day) + timedelta(minutes=hhmm_minutes)
    return wall.replace(tzinfo=zone).astimezone(timezone.utc)


def wall_time_exists(day: date, hhmm_minutes: int, zone: ZoneInfo) -> bool:
    """False for local times skipped by a forward clock change."""
    wall = datetime(day.year, day.month, day.day) + timedelta(minutes=hhmm_minutes)
    return local_instant(day, hhmm_minutes, zone).astimezone(zone).replace(tzinfo=None) == wall


def merge_windows(windows: Iterable[AvailabilityWindow]) -> list[tuple[int, int]]:
    """Merge active windows into disjoint ``(start, end)`` minute ranges.

    Overlapping or touching windows collapse into one range so that slicing
    never yields the same slot twice.
    """
    ranges = sorted(
        (minutes_of(w.start_time), minutes_of(w.end_time))
        for w in windows
        if w.is_active
    )
    merged: list[tuple[int, int]] = []
    for start, end in ranges:
        if end <= start:
            continue
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def _overlaps(start: datetime, end: datetime, taken: Sequence[Interval]) -> bool:
    return any(start < t_end and t_start < end for t_start, t_end in taken)


def slots_for_date(
    host: Host,
    day: date,
    windows: Iterable[AvailabilityWindow],
    *,
    now: datetime,
    taken: Sequence[Interval] = (),
    slot_minutes: int = 30,
) -> list[BookableSlot]:
    """Decompose a host's windows for ``day`` into bookable slots.

    Slots are ``slot_minutes`` wide, lie fully inside the union of the
    windows for that weekday, start strictly after ``now`` and do not
    overlap any ``taken`` interval. Trailing remainders shorter than a slot
    are dropped. The result is sorted by start time.
    """
    if not host.has_full_license:
        raise NotBookable(f"Host {host.id} does not have scheduling enabled")

    weekday = day_of_week(day)
    todays = [w for w in windows if w.day_of_week == weekday]
    if not todays:
        return []

    zone = host_zone(host)
    now = ensure_utc(now)
    slots: list[BookableSlot] = []
    accepted: list[Interval] = []
    width = timedelta(minutes=slot_minutes)
    for range_start, range_end in merge_windows(todays):
        cursor = range_start
        while cursor + slot_minutes <= range_end:
            starts_at = local_instant(day, cursor, zone)
            ends_at = local_instant(day, cursor + slot_minutes, zone)
            # Across a clock change a wall-clock slot is not slot_minutes long
            if (
                ends_at - starts_at == width
                and wall_time_exists(day, cursor, zone)
                and starts_at > now
                and not _overlaps(starts_at, ends_at, taken)
                and not _overlaps(starts_at, ends_at, accepted)
            ):
                accepted.append((starts_at, ends_at))
                slots.append(
                    BookableSlot(
                        date=day,
                        start_time=format_minutes(cursor),
                        end_time=format_minutes(cursor + slot_minutes),
                        starts_at=starts_at,
                        ends_at=ends_at,
                    )
                )
            cursor += slot_minutes
    slots.sort(key=lambda s: s.starts_at)
    return slots


def retired_intervals(host: Host, retired: Iterable[RetiredSlot]) -> list[Interval]:
    zone = host_zone(host)
    return [
        (
            local_instant(r.slot_date, minutes_of(r.start_time), zone),
            local_instant(r.slot_date, minutes_of(r.end_time), zone),
        )
        for r in retired
    ]


class SlotService:
    """Read path: resolves the host and its bookings, then generates slots."""

    def __init__(self, store: "SchedulingStore", slot_minutes: int = 30):
        self.store = store
        self.slot_minutes = slot_minutes

    async def get_bookable_host(self, host_id: str) -> Host:
        host = await self.store.resolve_host(host_id)
        if host is None:
            raise NotFound(f"Host {host_id} not found")
        if not host.has_full_license:
            raise NotBookable(f"Host {host_id} does not have scheduling enabled")
        return host

    async def taken_intervals(self, host: Host, day: date) -> list[Interval]:
        """Intervals on ``day`` already held by live meetings or retired slots."""
        zone = host_zone(host)
        day_start = local_instant(day, 0, zone)
        day_end = local_instant(day + timedelta(days=1), 0, zone)
        meetings = await self.store.load_active_meetings(host.id, day_start, day_end)
        retired = await self.store.load_retired_slots(host.id, day)
        taken = [(ensure_utc(m.start_time), ensure_utc(m.end_time)) for m in meetings]
        taken.extend(retired_intervals(host, retired))
        return taken

    async def slots_for_host(
        self,
        host: Host,
        day: date,
        now: Optional[datetime] = None,
    ) -> list[BookableSlot]:
        windows = await self.store.load_active_windows(host.id, day_of_week(day))
        taken = await self.taken_intervals(host, day)
        return slots_for_date(
            host,
            day,
            windows,
            now=now or datetime.now(timezone.utc),
            taken=taken,
            slot_minutes=self.slot_minutes,
        )

    async def available_slots(
        self,
        host_id: str,
        day: date,
        now: Optional[datetime] = None,
    ) -> tuple[Host, list[BookableSlot]]:
        host = await self.get_bookable_host(host_id)
        return host, await self.slots_for_host(host, day, now)
