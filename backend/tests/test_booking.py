"""Tests for the booking engine: public bookings, direct scheduling and the meeting lifecycle."""

import asyncio
from datetime import date, datetime, timedelta, timezone

import pytest

from conftest import MONDAY, NOW, UID_DOMAIN
from meetbook.calendar import parse_events
from meetbook.core.errors import (
    HostNotBookable,
    InvalidMeeting,
    InvalidParticipant,
    InvalidTransition,
    NotFound,
    SlotUnavailable,
)
from meetbook.domain import Meeting, RetiredSlot, WindowSpec
from meetbook.scheduling import BookingRequest, BookingResult, slot_reference


def _request(host_id, start="09:00", end="09:30", name="Grace Hopper", email="grace@example.com"):
    return BookingRequest(
        host_id=host_id,
        slot=slot_reference(MONDAY, start, end),
        participant_name=name,
        participant_email=email,
        title="Intro call",
    )


def _utc(hour, minute=0):
    return datetime(MONDAY.year, MONDAY.month, MONDAY.day, hour, minute, tzinfo=timezone.utc)


async def _open_starts(engine, host_id):
    _, slots = await engine.slots.available_slots(host_id, MONDAY, now=NOW)
    return [s.start_time for s in slots]


class TestPublicBooking:
    @pytest.mark.asyncio
    async def test_booking_creates_confirmed_meeting_and_retires_slot(self, engine, store, monday_host):
        result = await engine.book(_request(monday_host.id), now=NOW)

        meeting = result.meeting
        assert meeting.status == "confirmed"
        assert meeting.start_time == _utc(9)
        assert meeting.end_time == _utc(9, 30)
        assert meeting.booker_email == "grace@example.com"
        assert meeting.description == "Meeting with Grace Hopper"
        assert meeting.meeting_url == f"http://testserver/meeting/{meeting.id}"
        assert result.document_url == f"http://testserver/ics/{meeting.id}.ics"

        stored = await store.get_meeting(meeting.id)
        assert stored.status == "confirmed"
        assert stored.start_time == meeting.start_time

        retired = await store.load_retired_slots(monday_host.id, MONDAY)
        assert [(r.start_time, r.meeting_id) for r in retired] == [("09:00", meeting.id)]
        assert await _open_starts(engine, monday_host.id) == ["09:30"]

    @pytest.mark.asyncio
    async def test_repeat_booking_of_same_slot_fails(self, engine, monday_host):
        await engine.book(_request(monday_host.id), now=NOW)

        with pytest.raises(SlotUnavailable):
            await engine.book(_request(monday_host.id, email="someone@example.com"), now=NOW)

    @pytest.mark.asyncio
    async def test_concurrent_bookings_for_one_slot(self, engine, store, monday_host):
        attempts = [
            engine.book(_request(monday_host.id, email=f"booker{i}@example.com"), now=NOW)
            for i in range(5)
        ]

        results = await asyncio.gather(*attempts, return_exceptions=True)

        booked = [r for r in results if isinstance(r, BookingResult)]
        rejected = [r for r in results if isinstance(r, SlotUnavailable)]
        assert len(booked) == 1
        assert len(rejected) == 4
        assert len(await store.list_meetings(monday_host.id)) == 1

    @pytest.mark.asyncio
    async def test_slot_outside_windows(self, engine, monday_host):
        with pytest.raises(SlotUnavailable):
            await engine.book(_request(monday_host.id, "10:00", "10:30"), now=NOW)

    @pytest.mark.asyncio
    async def test_slot_not_on_grid(self, engine, monday_host):
        with pytest.raises(SlotUnavailable):
            await engine.book(_request(monday_host.id, "09:15", "09:45"), now=NOW)

    @pytest.mark.asyncio
    async def test_slot_in_the_past(self, engine, monday_host):
        with pytest.raises(SlotUnavailable):
            await engine.book(_request(monday_host.id), now=_utc(9, 5))

    @pytest.mark.asyncio
    async def test_unlicensed_or_missing_host(self, engine, unlicensed_host):
        with pytest.raises(HostNotBookable):
            await engine.book(_request(unlicensed_host.id), now=NOW)
        with pytest.raises(HostNotBookable):
            await engine.book(_request("nobody"), now=NOW)

    @pytest.mark.asyncio
    async def test_invalid_participant_leaves_nothing_behind(self, engine, store, monday_host):
        with pytest.raises(InvalidParticipant):
            await engine.book(_request(monday_host.id, email="not-an-email"), now=NOW)
        with pytest.raises(InvalidParticipant):
            await engine.book(_request(monday_host.id, name="  "), now=NOW)

        assert await store.list_meetings(monday_host.id) == []
        assert await _open_starts(engine, monday_host.id) == ["09:00", "09:30"]

    @pytest.mark.asyncio
    async def test_booking_after_spring_forward_gap(self, engine, store):
        host = await store.create_host(
            email="ny@example.com",
            full_name="Eastern Host",
            has_full_license=True,
            timezone="America/New_York",
        )
        await store.add_window(host.id, WindowSpec(0, "01:30", "03:30"))
        day = date(2030, 3, 10)
        request = BookingRequest(
            host_id=host.id,
            slot=slot_reference(day, "03:00", "03:30"),
            participant_name="Grace Hopper",
            participant_email="grace@example.com",
            title="Early call",
        )

        result = await engine.book(request, now=NOW)

        assert result.meeting.start_time == datetime(2030, 3, 10, 7, 0, tzinfo=timezone.utc)
        assert result.meeting.end_time == datetime(2030, 3, 10, 7, 30, tzinfo=timezone.utc)
        stored = await store.get_meeting(result.meeting.id)
        assert stored.end_time > stored.start_time
        _, slots = await engine.slots.available_slots(host.id, day, now=NOW)
        assert [s.start_time for s in slots] == ["01:30"]

    @pytest.mark.asyncio
    async def test_invite_is_cached(self, engine, cache, monday_host):
        result = await engine.book(_request(monday_host.id), now=NOW)

        assert cache.load(result.meeting.id) == result.document
        assert await engine.document_for(result.meeting.id) == result.document
        [event] = parse_events(result.document)
        assert event.uid == f"{result.meeting.id}@{UID_DOMAIN}"
        assert event.attendees == ("mailto:grace@example.com",)


class TestStorageUniqueness:
    @pytest.mark.asyncio
    async def test_second_retirement_of_a_slot_is_rejected(self, store, host):
        def meeting(meeting_id, hour):
            return Meeting(
                id=meeting_id,
                host_id=host.id,
                title="Call",
                start_time=_utc(hour),
                end_time=_utc(hour) + timedelta(minutes=30),
                status="confirmed",
            )

        def retired(meeting_id):
            return RetiredSlot(
                host_id=host.id,
                slot_date=MONDAY,
                start_time="09:00",
                end_time="09:30",
                meeting_id=meeting_id,
            )

        await store.persist_meeting(meeting("m1", 9), retired("m1"))

        # Different meeting time, same slot key: the whole write is rejected
        with pytest.raises(SlotUnavailable):
            await store.persist_meeting(meeting("m2", 11), retired("m2"))

        assert [m.id for m in await store.list_meetings(host.id)] == ["m1"]

    @pytest.mark.asyncio
    async def test_two_live_meetings_cannot_share_a_start(self, store, host):
        first = Meeting(id="m1", host_id=host.id, title="A", start_time=_utc(9), end_time=_utc(10))
        second = Meeting(id="m2", host_id=host.id, title="B", start_time=_utc(9), end_time=_utc(9, 30))

        await store.persist_meeting(first)
        with pytest.raises(SlotUnavailable):
            await store.persist_meeting(second)

        await store.update_meeting_status("m1", host.id, "cancelled")
        await store.persist_meeting(second)
        assert {m.id for m in await store.list_meetings(host.id)} == {"m1", "m2"}


class TestDirectScheduling:
    @pytest.mark.asyncio
    async def test_direct_meeting_blocks_overlapping_slots(self, engine, monday_host):
        result = await engine.schedule_direct(monday_host.id, "Planning", start=_utc(9))

        assert result.meeting.status == "confirmed"
        # Default length is one hour
        assert result.meeting.end_time == _utc(10)
        assert await _open_starts(engine, monday_host.id) == []

    @pytest.mark.asyncio
    async def test_direct_meeting_with_participant(self, engine, monday_host):
        result = await engine.schedule_direct(
            monday_host.id,
            "Review",
            start=_utc(9, 30),
            end=_utc(9, 45),
            participant_name="Grace Hopper",
            participant_email="grace@example.com",
        )

        assert result.meeting.booker_email == "grace@example.com"
        assert await _open_starts(engine, monday_host.id) == ["09:00"]

    @pytest.mark.asyncio
    async def test_end_must_follow_start(self, engine, monday_host):
        with pytest.raises(InvalidMeeting):
            await engine.schedule_direct(monday_host.id, "Backwards", start=_utc(10), end=_utc(9))
        with pytest.raises(InvalidMeeting):
            await engine.schedule_direct(monday_host.id, "  ", start=_utc(10))

    @pytest.mark.asyncio
    async def test_missing_host(self, engine):
        with pytest.raises(NotFound):
            await engine.schedule_direct("nobody", "Planning", start=_utc(9))

    @pytest.mark.asyncio
    async def test_same_start_conflicts(self, engine, monday_host):
        await engine.schedule_direct(monday_host.id, "First", start=_utc(13))

        with pytest.raises(SlotUnavailable):
            await engine.schedule_direct(monday_host.id, "Second", start=_utc(13))

    @pytest.mark.asyncio
    async def test_cancelling_a_direct_meeting_frees_its_time(self, engine, monday_host):
        result = await engine.schedule_direct(monday_host.id, "Tentative", start=_utc(9), end=_utc(9, 30))
        assert await _open_starts(engine, monday_host.id) == ["09:30"]

        await engine.cancel(monday_host.id, result.meeting.id)

        assert await _open_starts(engine, monday_host.id) == ["09:00", "09:30"]


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_cancel_does_not_reopen_booked_slot(self, engine, monday_host):
        result = await engine.book(_request(monday_host.id), now=NOW)

        cancelled = await engine.cancel(monday_host.id, result.meeting.id)

        assert cancelled.status == "cancelled"
        assert await _open_starts(engine, monday_host.id) == ["09:30"]
        with pytest.raises(SlotUnavailable):
            await engine.book(_request(monday_host.id), now=NOW)

    @pytest.mark.asyncio
    async def test_cancel_twice(self, engine, monday_host):
        result = await engine.book(_request(monday_host.id), now=NOW)
        await engine.cancel(monday_host.id, result.meeting.id)

        with pytest.raises(InvalidTransition):
            await engine.cancel(monday_host.id, result.meeting.id)
        with pytest.raises(InvalidTransition):
            await engine.complete(monday_host.id, result.meeting.id)

    @pytest.mark.asyncio
    async def test_complete(self, engine, monday_host):
        result = await engine.book(_request(monday_host.id), now=NOW)

        completed = await engine.complete(monday_host.id, result.meeting.id)

        assert completed.status == "completed"
        with pytest.raises(InvalidTransition):
            await engine.cancel(monday_host.id, result.meeting.id)

    @pytest.mark.asyncio
    async def test_cancel_refreshes_invite(self, engine, monday_host):
        result = await engine.book(_request(monday_host.id), now=NOW)
        assert "STATUS:CONFIRMED" in result.document

        await engine.cancel(monday_host.id, result.meeting.id)

        assert "STATUS:CANCELLED" in await engine.document_for(result.meeting.id)

    @pytest.mark.asyncio
    async def test_other_host_cannot_touch_meeting(self, engine, monday_host, other_host):
        result = await engine.book(_request(monday_host.id), now=NOW)

        with pytest.raises(NotFound):
            await engine.cancel(other_host.id, result.meeting.id)
        with pytest.raises(NotFound):
            await engine.delete(other_host.id, result.meeting.id)

    @pytest.mark.asyncio
    async def test_unknown_meetings_leave_no_locks_behind(self, engine, monday_host):
        result = await engine.book(_request(monday_host.id), now=NOW)
        held = len(engine.locks)

        for host_id in ("nobody", "someone-else", monday_host.id):
            with pytest.raises(NotFound):
                await engine.cancel(host_id, "missing")
            with pytest.raises(NotFound):
                await engine.complete(host_id, "missing")
            with pytest.raises(NotFound):
                await engine.delete(host_id, "missing")
        with pytest.raises(NotFound):
            await engine.delete("nobody", result.meeting.id)

        assert len(engine.locks) == held == 1

    @pytest.mark.asyncio
    async def test_delete_does_not_reopen_booked_slot(self, engine, store, cache, monday_host):
        result = await engine.book(_request(monday_host.id), now=NOW)

        await engine.delete(monday_host.id, result.meeting.id)

        assert await store.get_meeting(result.meeting.id) is None
        assert cache.load(result.meeting.id) is None
        assert await _open_starts(engine, monday_host.id) == ["09:30"]
        retired = await store.load_retired_slots(monday_host.id, MONDAY)
        assert [(r.start_time, r.meeting_id) for r in retired] == [("09:00", None)]
        with pytest.raises(NotFound):
            await engine.delete(monday_host.id, result.meeting.id)

    @pytest.mark.asyncio
    async def test_list_and_get_meetings(self, engine, monday_host):
        booked = await engine.book(_request(monday_host.id, "09:30", "10:00"), now=NOW)
        direct = await engine.schedule_direct(monday_host.id, "Early", start=_utc(8), end=_utc(8, 30))
        await engine.cancel(monday_host.id, direct.meeting.id)

        meetings = await engine.list_meetings(monday_host.id)
        assert [m.id for m in meetings] == [direct.meeting.id, booked.meeting.id]
        assert [m.id for m in await engine.list_meetings(monday_host.id, "confirmed")] == [booked.meeting.id]

        meeting, host = await engine.get_meeting(booked.meeting.id)
        assert meeting.title == "Intro call"
        assert host.id == monday_host.id
        with pytest.raises(NotFound):
            await engine.get_meeting("missing")
