from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from skedify.db.models import BookingStatus, CalendarEvent
from skedify.scheduling import errors
from skedify.scheduling.lifecycle import (
    NO_CALENDAR_WARNING,
    approve_booking,
    create_booking,
    parse_approve_booking_args,
    parse_create_booking_args,
    reject_booking,
)


NOW = datetime(2099, 3, 1, 8, 0, tzinfo=timezone.utc)


def _utc(hour: int, minute: int = 0) -> datetime:
    return datetime(2099, 3, 2, hour, minute, tzinfo=timezone.utc)


def _args(start_time: datetime, **overrides):
    payload = {
        "first_name": "Grace",
        "last_name": "Hopper",
        "email": "grace@example.com",
        "start_time": start_time.isoformat(),
    }
    payload.update(overrides)
    return parse_create_booking_args(payload)


def test_create_booking_on_empty_schedule_is_pending(db, make_provider, make_session_type):
    session_type = make_session_type(make_provider(), duration_minutes=30)

    booking = create_booking(db, session_type.id, _args(_utc(14)), now=NOW)

    assert booking.id is not None
    assert booking.status == BookingStatus.PENDING.value
    assert booking.start_time == _utc(14)
    assert booking.email == "grace@example.com"


def test_create_booking_rejects_overlap_with_pending(db, make_provider, make_session_type):
    session_type = make_session_type(make_provider(), duration_minutes=30)
    create_booking(db, session_type.id, _args(_utc(14)), now=NOW)

    with pytest.raises(errors.ConflictError) as exc_info:
        create_booking(db, session_type.id, _args(_utc(14, 15)), now=NOW)

    assert exc_info.value.error_code == "SLOT_UNAVAILABLE"
    assert exc_info.value.status_code == 409


def test_create_booking_allows_touching_interval(db, make_provider, make_session_type):
    session_type = make_session_type(make_provider(), duration_minutes=30)
    create_booking(db, session_type.id, _args(_utc(14)), now=NOW)

    booking = create_booking(db, session_type.id, _args(_utc(14, 30)), now=NOW)

    assert booking.status == BookingStatus.PENDING.value


def test_create_booking_ignores_calendar_events(
    db, make_provider, make_session_type, make_calendar, make_event
):
    provider = make_provider()
    session_type = make_session_type(provider)
    make_event(make_calendar(provider), _utc(14), _utc(15))

    booking = create_booking(db, session_type.id, _args(_utc(14)), now=NOW)

    assert booking.status == BookingStatus.PENDING.value


def test_create_booking_in_past_is_rejected(db, make_provider, make_session_type):
    session_type = make_session_type(make_provider())

    with pytest.raises(errors.ValidationError) as exc_info:
        create_booking(db, session_type.id, _args(NOW - timedelta(minutes=1)), now=NOW)

    assert exc_info.value.error_code == "START_TIME_IN_PAST"


def test_create_booking_unknown_session_type(db):
    with pytest.raises(errors.NotFoundError) as exc_info:
        create_booking(db, 404, _args(_utc(14)), now=NOW)

    assert exc_info.value.error_code == "SESSION_TYPE_NOT_FOUND"


def test_create_booking_args_require_contact():
    with pytest.raises(PydanticValidationError):
        _args(_utc(14), email=None)

    args = _args(_utc(14), email=None, phone="+1 555 0100")
    assert args.phone == "+1 555 0100"


def test_create_booking_args_reject_malformed_email():
    with pytest.raises(PydanticValidationError):
        _args(_utc(14), email="not-an-email")


def test_naive_start_time_is_read_in_app_timezone(db, make_provider, make_session_type, monkeypatch):
    monkeypatch.setenv("APP_TIMEZONE", "America/New_York")
    session_type = make_session_type(make_provider())

    booking = create_booking(
        db,
        session_type.id,
        _args(datetime(2099, 1, 15, 9, 0)),
        now=NOW - timedelta(days=60),
    )

    assert booking.start_time == datetime(2099, 1, 15, 14, 0, tzinfo=timezone.utc)


def test_approve_creates_event_in_only_calendar(db, make_provider, make_session_type, make_calendar):
    provider = make_provider()
    session_type = make_session_type(provider, duration_minutes=30, name="Consultation")
    calendar = make_calendar(provider)
    booking = create_booking(db, session_type.id, _args(_utc(14)), now=NOW)

    result = approve_booking(db, provider.id, booking.id)

    assert result.booking.status == BookingStatus.APPROVED.value
    assert result.warning is None
    events = db.query(CalendarEvent).all()
    assert len(events) == 1
    event = events[0]
    assert event.id == result.event.id
    assert event.calendar_id == calendar.id
    assert event.booking_id == booking.id
    assert event.title == "Consultation with Grace Hopper"
    assert event.description == "Booking contact: grace@example.com"
    assert event.start_time.replace(tzinfo=timezone.utc) == _utc(14)
    assert event.end_time.replace(tzinfo=timezone.utc) == _utc(14, 30)


def test_approve_over_existing_event_fails_and_keeps_pending(
    db, make_provider, make_session_type, make_calendar, make_event
):
    provider = make_provider()
    session_type = make_session_type(provider, duration_minutes=30)
    make_event(make_calendar(provider), _utc(14, 15), _utc(15))
    booking = create_booking(db, session_type.id, _args(_utc(14)), now=NOW)

    with pytest.raises(errors.ConflictError) as exc_info:
        approve_booking(db, provider.id, booking.id)

    assert exc_info.value.error_code == "TIME_CONFLICT"
    db.refresh(booking)
    assert booking.status == BookingStatus.PENDING.value
    assert db.query(CalendarEvent).count() == 1


def test_approve_defaults_to_earliest_calendar(db, make_provider, make_session_type, make_calendar):
    provider = make_provider()
    session_type = make_session_type(provider)
    make_calendar(provider, name="Later", created_at=datetime(2099, 1, 2, tzinfo=timezone.utc))
    first = make_calendar(provider, name="First", created_at=datetime(2099, 1, 1, tzinfo=timezone.utc))
    booking = create_booking(db, session_type.id, _args(_utc(14)), now=NOW)

    result = approve_booking(db, provider.id, booking.id)

    assert result.event.calendar_id == first.id


def test_approve_into_explicit_calendar(db, make_provider, make_session_type, make_calendar):
    provider = make_provider()
    session_type = make_session_type(provider)
    make_calendar(provider, name="Work")
    personal = make_calendar(provider, name="Personal")
    booking = create_booking(db, session_type.id, _args(_utc(14)), now=NOW)

    result = approve_booking(db, provider.id, booking.id, calendar_id=personal.id)

    assert result.event.calendar_id == personal.id


def test_approve_into_foreign_calendar_is_forbidden(
    db, make_provider, make_session_type, make_calendar
):
    provider = make_provider()
    other = make_provider(username="bob")
    session_type = make_session_type(provider)
    foreign = make_calendar(other)
    booking = create_booking(db, session_type.id, _args(_utc(14)), now=NOW)

    with pytest.raises(errors.OwnershipError):
        approve_booking(db, provider.id, booking.id, calendar_id=foreign.id)

    db.refresh(booking)
    assert booking.status == BookingStatus.PENDING.value


def test_approve_without_calendar_returns_warning(db, make_provider, make_session_type):
    provider = make_provider()
    session_type = make_session_type(provider)
    booking = create_booking(db, session_type.id, _args(_utc(14)), now=NOW)

    result = approve_booking(db, provider.id, booking.id)

    assert result.booking.status == BookingStatus.APPROVED.value
    assert result.event is None
    assert result.warning == NO_CALENDAR_WARNING
    assert db.query(CalendarEvent).count() == 0


def test_approve_by_other_provider_is_forbidden(db, make_provider, make_session_type):
    owner = make_provider()
    intruder = make_provider(username="eve")
    session_type = make_session_type(owner)
    booking = create_booking(db, session_type.id, _args(_utc(14)), now=NOW)

    with pytest.raises(errors.OwnershipError) as exc_info:
        approve_booking(db, intruder.id, booking.id)

    assert exc_info.value.status_code == 403


def test_approve_unknown_booking(db, make_provider):
    with pytest.raises(errors.NotFoundError) as exc_info:
        approve_booking(db, make_provider().id, 12345)

    assert exc_info.value.error_code == "BOOKING_NOT_FOUND"


def test_approved_booking_cannot_be_approved_or_rejected_again(
    db, make_provider, make_session_type, make_calendar
):
    provider = make_provider()
    session_type = make_session_type(provider)
    make_calendar(provider)
    booking = create_booking(db, session_type.id, _args(_utc(14)), now=NOW)
    approve_booking(db, provider.id, booking.id)

    with pytest.raises(errors.InvalidTransitionError):
        approve_booking(db, provider.id, booking.id)
    with pytest.raises(errors.InvalidTransitionError):
        reject_booking(db, provider.id, booking.id)
    assert db.query(CalendarEvent).count() == 1


def test_reject_frees_interval_immediately(db, make_provider, make_session_type):
    provider = make_provider()
    session_type = make_session_type(provider, duration_minutes=30)
    booking = create_booking(db, session_type.id, _args(_utc(14)), now=NOW)

    rejected = reject_booking(db, provider.id, booking.id)
    rebooked = create_booking(db, session_type.id, _args(_utc(14)), now=NOW)

    assert rejected.status == BookingStatus.REJECTED.value
    assert rebooked.id != booking.id
    assert rebooked.status == BookingStatus.PENDING.value


def test_rejected_booking_is_terminal(db, make_provider, make_session_type):
    provider = make_provider()
    session_type = make_session_type(provider)
    booking = create_booking(db, session_type.id, _args(_utc(14)), now=NOW)
    reject_booking(db, provider.id, booking.id)

    with pytest.raises(errors.InvalidTransitionError):
        approve_booking(db, provider.id, booking.id)


def test_parse_approve_args_accepts_missing_body():
    assert parse_approve_booking_args(None).calendar_id is None
    assert parse_approve_booking_args({"calendar_id": 7}).calendar_id == 7


def test_failed_approval_commit_leaves_booking_pending(
    db, make_provider, make_session_type, make_calendar, monkeypatch
):
    provider = make_provider()
    session_type = make_session_type(provider)
    make_calendar(provider)
    booking = create_booking(db, session_type.id, _args(_utc(14)), now=NOW)

    def failing_commit():
        raise RuntimeError("database went away")

    monkeypatch.setattr(db, "commit", failing_commit)

    with pytest.raises(RuntimeError):
        approve_booking(db, provider.id, booking.id)

    db.refresh(booking)
    assert booking.status == BookingStatus.PENDING.value
    assert db.query(CalendarEvent).count() == 0
