from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from meetbook.core.database import build_engine, build_session_factory, create_tables
from meetbook.core.errors import InvalidMeeting, PersistenceFailure, SlotUnavailable
from meetbook.domain import (
    AvailabilityWindow,
    Host,
    Meeting,
    RetiredSlot,
    WindowSpec,
    ensure_utc,
    to_naive_utc,
)
from meetbook.models import AvailabilityWindow as WindowRow
from meetbook.models import BookingSlot as BookingSlotRow
from meetbook.models import Host as HostRow
from meetbook.models import Meeting as MeetingRow

logger = logging.getLogger(__name__)


def _host(row: HostRow) -> Host:
    return Host(
        id=row.id,
        full_name=row.full_name,
        email=row.email,
        has_full_license=bool(row.has_full_license),
        timezone=row.timezone or "UTC",
    )


def _window(row: WindowRow) -> AvailabilityWindow:
    return AvailabilityWindow(
        id=row.id,
        host_id=row.host_id,
        day_of_week=row.day_of_week,
        start_time=row.start_time,
        end_time=row.end_time,
        is_active=bool(row.is_active),
        created_at=row.created_at,
    )


def _meeting(row: MeetingRow) -> Meeting:
    return Meeting(
        id=row.id,
        host_id=row.host_id,
        title=row.title,
        description=row.description or "",
        start_time=ensure_utc(row.start_time),
        end_time=ensure_utc(row.end_time),
        timezone=row.timezone or "UTC",
        status=row.status,
        booker_name=row.booker_name,
        booker_email=row.booker_email,
        meeting_url=row.meeting_url,
        created_at=ensure_utc(row.created_at) if row.created_at else datetime.now(timezone.utc),
    )


def _retired(row: BookingSlotRow) -> RetiredSlot:
    return RetiredSlot(
        host_id=row.host_id,
        slot_date=row.slot_date,
        start_time=row.start_time,
        end_time=row.end_time,
        booked_by_name=row.booked_by_name,
        booked_by_email=row.booked_by_email,
        meeting_id=row.meeting_id,
    )


class SqlStore:
    """Async SQLAlchemy adapter (PostgreSQL in production, SQLite in tests)."""

    name = "sql"

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        auto_create_tables: bool = True,
        engine: Optional[AsyncEngine] = None,
    ):
        self.engine = engine or build_engine(database_url, echo=echo)
        self.session_factory: async_sessionmaker[AsyncSession] = build_session_factory(self.engine)
        self.auto_create_tables = auto_create_tables

    async def open(self) -> None:
        if self.auto_create_tables:
            try:
                await create_tables(self.engine)
            except SQLAlchemyError as e:
                raise PersistenceFailure("Failed to initialize database schema") from e

    async def close(self) -> None:
        await self.engine.dispose()

    # ==================== HOSTS ====================

    async def resolve_host(self, host_id: str) -> Optional[Host]:
        """Get host by ID"""
        try:
            async with self.session_factory() as session:
                row = await session.get(HostRow, host_id)
                return _host(row) if row else None
        except SQLAlchemyError as e:
            raise PersistenceFailure("Failed to load host") from e

    async def create_host(
        self,
        email: str,
        full_name: str,
        has_full_license: bool = False,
        timezone: str = "UTC",
        host_id: Optional[str] = None,
    ) -> Host:
        """Create new host (seeding and tests only)"""
        row = HostRow(
            id=host_id or uuid.uuid4().hex,
            email=email,
            full_name=full_name,
            has_full_license=has_full_license,
            timezone=timezone,
        )
        try:
            async with self.session_factory() as session:
                session.add(row)
                await session.commit()
                await session.refresh(row)
                return _host(row)
        except SQLAlchemyError as e:
            raise PersistenceFailure("Failed to create host") from e

    # ==================== AVAILABILITY ====================

    async def load_active_windows(self, host_id: str, day_of_week: int) -> list[AvailabilityWindow]:
        """Get active windows for one weekday"""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(WindowRow)
                    .where(
                        WindowRow.host_id == host_id,
                        WindowRow.day_of_week == day_of_week,
                        WindowRow.is_active.is_(True),
                    )
                    .order_by(WindowRow.start_time)
                )
                return [_window(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceFailure("Failed to load availability") from e

    async def list_windows(self, host_id: str) -> list[AvailabilityWindow]:
        """Get all active windows for a host"""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(WindowRow)
                    .where(WindowRow.host_id == host_id, WindowRow.is_active.is_(True))
                    .order_by(WindowRow.day_of_week, WindowRow.start_time)
                )
                return [_window(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceFailure("Failed to load availability") from e

    async def add_window(self, host_id: str, spec: WindowSpec) -> AvailabilityWindow:
        """Create new availability window"""
        row = WindowRow(
            id=uuid.uuid4().hex,
            host_id=host_id,
            day_of_week=spec.day_of_week,
            start_time=spec.start_time,
            end_time=spec.end_time,
            is_active=spec.is_active,
        )
        try:
            async with self.session_factory() as session:
                session.add(row)
                await session.commit()
                await session.refresh(row)
                return _window(row)
        except SQLAlchemyError as e:
            raise PersistenceFailure("Failed to add availability") from e

    async def replace_windows(self, host_id: str, specs: Sequence[WindowSpec]) -> list[AvailabilityWindow]:
        """Replace every window of a host in one transaction"""
        rows = [
            WindowRow(
                id=uuid.uuid4().hex,
                host_id=host_id,
                day_of_week=spec.day_of_week,
                start_time=spec.start_time,
                end_time=spec.end_time,
                is_active=spec.is_active,
            )
            for spec in specs
        ]
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await session.execute(delete(WindowRow).where(WindowRow.host_id == host_id))
                    session.add_all(rows)
        except SQLAlchemyError as e:
            raise PersistenceFailure("Failed to replace availability") from e
        return await self.list_windows(host_id)

    async def remove_window(self, window_id: str, host_id: str) -> bool:
        """Delete a window only when it belongs to the host"""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    delete(WindowRow).where(WindowRow.id == window_id, WindowRow.host_id == host_id)
                )
                await session.commit()
                return result.rowcount > 0
        except SQLAlchemyError as e:
            raise PersistenceFailure("Failed to delete availability") from e

    # ==================== MEETINGS ====================

    async def load_active_meetings(self, host_id: str, start: datetime, end: datetime) -> list[Meeting]:
        """Get non-cancelled meetings overlapping [start, end)"""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(MeetingRow)
                    .where(
                        MeetingRow.host_id == host_id,
                        MeetingRow.status != "cancelled",
                        MeetingRow.start_time < to_naive_utc(end),
                        MeetingRow.end_time > to_naive_utc(start),
                    )
                    .order_by(MeetingRow.start_time)
                )
                return [_meeting(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceFailure("Failed to load meetings") from e

    async def load_retired_slots(self, host_id: str, slot_date: date) -> list[RetiredSlot]:
        """Get slots already consumed by public bookings on a date"""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(BookingSlotRow).where(
                        BookingSlotRow.host_id == host_id,
                        BookingSlotRow.slot_date == slot_date,
                        BookingSlotRow.is_booked.is_(True),
                    )
                )
                return [_retired(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceFailure("Failed to load booked slots") from e

    async def persist_meeting(self, meeting: Meeting, retired_slot: Optional[RetiredSlot] = None) -> Meeting:
        """Insert a meeting and, for public bookings, its retired slot atomically"""
        if ensure_utc(meeting.end_time) <= ensure_utc(meeting.start_time):
            raise InvalidMeeting("Meeting must end after it starts")
        row = MeetingRow(
            id=meeting.id,
            host_id=meeting.host_id,
            title=meeting.title,
            description=meeting.description,
            start_time=to_naive_utc(meeting.start_time),
            end_time=to_naive_utc(meeting.end_time),
            timezone=meeting.timezone,
            status=meeting.status,
            booker_name=meeting.booker_name,
            booker_email=meeting.booker_email,
            meeting_url=meeting.meeting_url,
            created_at=to_naive_utc(meeting.created_at),
        )
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(row)
                    # Flush the meeting first so the slot's foreign key resolves
                    await session.flush()
                    if retired_slot is not None:
                        session.add(
                            BookingSlotRow(
                                id=uuid.uuid4().hex,
                                host_id=retired_slot.host_id,
                                slot_date=retired_slot.slot_date,
                                start_time=retired_slot.start_time,
                                end_time=retired_slot.end_time,
                                is_booked=True,
                                booked_by_name=retired_slot.booked_by_name,
                                booked_by_email=retired_slot.booked_by_email,
                                meeting_id=meeting.id,
                            )
                        )
                        await session.flush()
        except IntegrityError as e:
            logger.info(f"Uniqueness conflict while booking for host {meeting.host_id}: {e.orig}")
            raise SlotUnavailable("The requested time is no longer available") from e
        except SQLAlchemyError as e:
            raise PersistenceFailure("Failed to save meeting") from e
        return meeting

    async def get_meeting(self, meeting_id: str) -> Optional[Meeting]:
        """Get meeting by ID"""
        try:
            async with self.session_factory() as session:
                row = await session.get(MeetingRow, meeting_id)
                return _meeting(row) if row else None
        except SQLAlchemyError as e:
            raise PersistenceFailure("Failed to load meeting") from e

    async def list_meetings(self, host_id: str) -> list[Meeting]:
        """Get every meeting of a host, earliest first"""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(MeetingRow)
                    .where(MeetingRow.host_id == host_id)
                    .order_by(MeetingRow.start_time.asc())
                )
                return [_meeting(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceFailure("Failed to load meetings") from e

    async def update_meeting_status(self, meeting_id: str, host_id: str, status: str) -> Optional[Meeting]:
        """Set a meeting's status; None when the host does not own it"""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    update(MeetingRow)
                    .where(MeetingRow.id == meeting_id, MeetingRow.host_id == host_id)
                    .values(status=status)
                )
                await session.commit()
                if result.rowcount == 0:
                    return None
        except IntegrityError as e:
            raise SlotUnavailable("Another meeting already holds this time") from e
        except SQLAlchemyError as e:
            raise PersistenceFailure("Failed to update meeting") from e
        return await self.get_meeting(meeting_id)

    async def delete_meeting(self, meeting_id: str, host_id: str) -> bool:
        """Hard delete; the retired slot stays retired"""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    owned = await session.scalar(
                        select(MeetingRow.id).where(MeetingRow.id == meeting_id, MeetingRow.host_id == host_id)
                    )
                    if owned is None:
                        return False
                    await session.execute(
                        update(BookingSlotRow)
                        .where(BookingSlotRow.meeting_id == meeting_id)
                        .values(meeting_id=None)
                    )
                    await session.execute(delete(MeetingRow).where(MeetingRow.id == meeting_id))
                return True
        except SQLAlchemyError as e:
            raise PersistenceFailure("Failed to delete meeting") from e
