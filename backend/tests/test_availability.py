from datetime import date, datetime, timedelta, timezone

import pytest

from skedify.db.models import BookingStatus
from skedify.scheduling.availability import (
    BusyInterval,
    fetch_day_busy_intervals,
    filter_available_slots,
    get_available_slots,
    parse_requested_date,
)
from skedify.scheduling.errors import ValidationError
from skedify.scheduling.slots import generate_candidate_slots


DAY = date(2099, 3, 2)


def _utc(hour: int, minute: int = 0, day: int = 2) -> datetime:
    return datetime(2099, 3, day, hour, minute, tzinfo=timezone.utc)


def test_filter_drops_slots_overlapping_an_approved_booking():
    candidates = generate_candidate_slots(DAY, 30)
    busy = [BusyInterval(_utc(10), _utc(10, 30))]

    available = filter_available_slots(candidates, busy, [])

    assert _utc(10) not in available
    assert _utc(9, 45) not in available
    assert _utc(10, 30) in available
    assert _utc(9, 30) in available
    assert _utc(10, 15) not in available
    assert len(available) == 29


def test_filter_treats_events_like_bookings():
    candidates = generate_candidate_slots(DAY, 60)
    events = [BusyInterval(_utc(12), _utc(13))]

    available = filter_available_slots(candidates, [], events)

    assert _utc(11) in available
    assert _utc(11, 15) not in available
    assert _utc(12, 45) not in available
    assert _utc(13) in available


def test_available_slots_from_store(db, make_provider, make_session_type, make_booking):
    provider = make_provider()
    session_type = make_session_type(provider, duration_minutes=30)
    make_booking(session_type, _utc(10), status=BookingStatus.APPROVED.value)

    available = get_available_slots(db, session_type, DAY)

    assert _utc(10) not in available
    assert _utc(9, 45) not in available
    assert _utc(10, 30) in available


def test_available_slots_ignore_rejected_bookings(db, make_provider, make_session_type, make_booking):
    session_type = make_session_type(make_provider())
    make_booking(session_type, _utc(10), status=BookingStatus.REJECTED.value)

    available = get_available_slots(db, session_type, DAY)

    assert len(available) == 32


def test_busy_bookings_from_other_session_types_keep_their_own_length(
    db, make_provider, make_session_type, make_booking
):
    provider = make_provider()
    short = make_session_type(provider, duration_minutes=15, name="Check-in")
    long = make_session_type(provider, duration_minutes=90, name="Deep dive")
    make_booking(long, _utc(13))

    available = get_available_slots(db, short, DAY)

    assert _utc(13) not in available
    assert _utc(14, 15) not in available
    assert _utc(14, 30) in available


def test_busy_intervals_only_include_the_requested_day(
    db, make_provider, make_session_type, make_booking, make_calendar, make_event
):
    provider = make_provider()
    session_type = make_session_type(provider)
    calendar = make_calendar(provider)
    make_booking(session_type, _utc(10))
    make_booking(session_type, _utc(10, day=3))
    make_event(calendar, _utc(15), _utc(16))
    make_event(calendar, _utc(15, day=1), _utc(16, day=1))

    bookings, events = fetch_day_busy_intervals(db, provider.id, DAY)

    assert bookings == [BusyInterval(_utc(10), _utc(10) + timedelta(minutes=30))]
    assert events == [BusyInterval(_utc(15), _utc(16))]


def test_available_slots_exclude_calendar_events(
    db, make_provider, make_session_type, make_calendar, make_event
):
    provider = make_provider()
    session_type = make_session_type(provider, duration_minutes=30)
    make_event(make_calendar(provider), _utc(9), _utc(12))

    available = get_available_slots(db, session_type, DAY)

    assert available[0] == _utc(12)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("2099-03-02", date(2099, 3, 2)),
        ("  2099-03-02 ", date(2099, 3, 2)),
        ("2099-03-02T23:30:00Z", date(2099, 3, 2)),
    ],
)
def test_parse_requested_date_iso(text, expected):
    assert parse_requested_date(text) == expected


def test_parse_requested_date_relative_to_now():
    now_dt = datetime(2099, 3, 1, 12, 0, tzinfo=timezone.utc)

    assert parse_requested_date("tomorrow", now_dt=now_dt) == date(2099, 3, 2)


@pytest.mark.parametrize("text", ["", "   ", "qwertyuiop"])
def test_parse_requested_date_rejects_garbage(text):
    with pytest.raises(ValidationError) as exc_info:
        parse_requested_date(text)

    assert exc_info.value.error_code == "INVALID_DATE"
