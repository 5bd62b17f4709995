from datetime import timedelta

import pytest

from models.clock_records import ClockType
from utils.clock_utils import derive_clock_state, derive_clock_status, edit_punch_event, retime_latest_clock_in
from utils.edit_utils import EditProvenance

from conftest import DAY, USER_ID, at, make_log, make_punch

YESTERDAY = DAY - timedelta(days=1)


def provenance(reason="wrong time"):
    return EditProvenance(reason=reason, edited_by="admin-1", ip_address="192.168.1.5", edited_at=at("12:00"))


@pytest.mark.parametrize("today, now, expected", [
    ([("IN", "09:00")], "10:00", True),
    ([("IN", "09:00"), ("OUT", "17:00")], "18:00", False),
    ([("IN", "09:00"), ("OUT", "12:00"), ("IN", "13:00")], "14:00", True),
    ([("OUT", "17:00")], "18:00", False),
    ([], "10:00", False),
])
def test_state_from_todays_punches(today, now, expected):
    events = [make_punch(kind, hhmm) for kind, hhmm in today]
    status = derive_clock_state(events, [make_punch("IN", "22:00", YESTERDAY)], at(now), cutoff_hour=8)
    assert status.clocked_in is expected


def test_overnight_shift_reads_as_clocked_in_early_morning():
    yesterday = [make_punch("IN", "22:00", YESTERDAY)]
    status = derive_clock_state([], yesterday, at("03:00"), cutoff_hour=8)
    assert status.clocked_in is True
    assert status.last_clock_in.timestamp == at("22:00", YESTERDAY)


def test_fallback_stops_at_cutoff():
    yesterday = [make_punch("IN", "22:00", YESTERDAY)]
    assert derive_clock_state([], yesterday, at("08:00"), cutoff_hour=8).clocked_in is False


def test_closed_overnight_shift_reads_as_clocked_out():
    yesterday = [make_punch("IN", "22:00", YESTERDAY), make_punch("OUT", "23:30", YESTERDAY)]
    assert derive_clock_state([], yesterday, at("03:00"), cutoff_hour=8).clocked_in is False


async def test_status_reads_local_days_from_store(store):
    await store.add_punch(make_punch("IN", "22:00", YESTERDAY))
    await store.add_punch(make_punch("IN", "09:00", user_id="someone-else"))

    status = await derive_clock_status(store, USER_ID, now=at("02:00"))

    assert status.clocked_in is True
    assert status.last_clock_out is None


async def test_first_edit_keeps_original_timestamp(store):
    record = await store.add_punch(make_punch("IN", "09:10"))

    edited = await edit_punch_event(store, record, at("08:55"), provenance())
    assert edited.timestamp == at("08:55")
    assert edited.original_timestamp == at("09:10")
    assert edited.is_edited
    assert edited.edited_by == "admin-1"
    assert edited.edit_ip_address == "192.168.1.5"

    again = await edit_punch_event(store, edited, at("08:50"), provenance("second fix"))
    assert again.timestamp == at("08:50")
    assert again.original_timestamp == at("09:10")
    assert again.edit_reason == "second fix"


async def test_retime_moves_only_the_latest_clock_in(store):
    first = await store.add_punch(make_punch("IN", "08:00"))
    await store.add_punch(make_punch("OUT", "12:00"))
    latest = await store.add_punch(make_punch("IN", "13:05"))

    updated = await retime_latest_clock_in(store, USER_ID, at("13:00"), provenance())

    assert updated.id == latest.id
    assert updated.type == ClockType.IN
    assert store.clock_records[first.id].timestamp == at("08:00")
    assert store.clock_records[latest.id].timestamp == at("13:00")


async def test_retime_without_clock_in_does_nothing(store):
    await store.add_punch(make_punch("OUT", "12:00"))
    assert await retime_latest_clock_in(store, USER_ID, at("09:00"), provenance()) is None


async def test_status_carries_ongoing_overtime(store):
    await store.add_punch(make_punch("IN", "09:00"))
    await store.add(make_log("17:00", "18:00"))
    overtime = await store.add(make_log("18:00", None, project_code="OT"))

    status = await derive_clock_status(store, USER_ID, now=at("19:00"))

    assert status.clocked_in is True
    assert status.ongoing_overtime.id == overtime.id


async def test_status_without_overtime(store):
    await store.add(make_log("09:00", None))
    status = await derive_clock_status(store, USER_ID, now=at("10:00"))
    assert status.ongoing_overtime is None
