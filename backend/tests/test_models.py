"""Tests for the table constraints declared on the ORM models."""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError

from meetbook.core.errors import InvalidMeeting
from meetbook.domain import Meeting
from meetbook.models import AvailabilityWindow as WindowRow
from meetbook.models import Meeting as MeetingRow
from meetbook.stores import SqlStore

START = datetime(2030, 1, 7, 9, 0)


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    store = SqlStore(f"sqlite+aiosqlite:///{tmp_path / 'models.db'}")
    await store.open()
    await store.create_host(
        email="ada@example.com",
        full_name="Ada Lovelace",
        has_full_license=True,
        host_id="host-ada",
    )
    yield store
    await store.close()


async def _insert(store, row):
    async with store.session_factory() as session:
        session.add(row)
        await session.commit()


@pytest.mark.asyncio
async def test_meeting_must_end_after_it_starts(sql_store):
    row = MeetingRow(
        id="backwards",
        host_id="host-ada",
        title="Backwards",
        start_time=START,
        end_time=START - timedelta(minutes=30),
        status="confirmed",
    )

    with pytest.raises(IntegrityError):
        await _insert(sql_store, row)


@pytest.mark.asyncio
async def test_window_must_end_after_it_starts(sql_store):
    row = WindowRow(id="w1", host_id="host-ada", day_of_week=1, start_time="10:00", end_time="09:00")

    with pytest.raises(IntegrityError):
        await _insert(sql_store, row)


@pytest.mark.asyncio
async def test_window_weekday_is_bounded(sql_store):
    row = WindowRow(id="w1", host_id="host-ada", day_of_week=7, start_time="09:00", end_time="10:00")

    with pytest.raises(IntegrityError):
        await _insert(sql_store, row)


@pytest.mark.asyncio
async def test_valid_rows_are_accepted(sql_store):
    await _insert(
        sql_store,
        WindowRow(id="w1", host_id="host-ada", day_of_week=6, start_time="09:00", end_time="10:00"),
    )
    await _insert(
        sql_store,
        MeetingRow(
            id="m1",
            host_id="host-ada",
            title="Call",
            start_time=START,
            end_time=START + timedelta(minutes=30),
            status="confirmed",
        ),
    )

    assert [w.id for w in await sql_store.list_windows("host-ada")] == ["w1"]
    assert (await sql_store.get_meeting("m1")).title == "Call"


@pytest.mark.asyncio
async def test_stores_refuse_inverted_meetings(store, host):
    start = START.replace(tzinfo=timezone.utc)
    meeting = Meeting(id="m1", host_id=host.id, title="Backwards", start_time=start, end_time=start)

    with pytest.raises(InvalidMeeting):
        await store.persist_meeting(meeting)

    assert await store.list_meetings(host.id) == []
