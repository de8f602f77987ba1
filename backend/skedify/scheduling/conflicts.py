from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from skedify.db.models import (
    ACTIVE_BOOKING_STATUSES,
    Booking,
    Calendar,
    CalendarEvent,
    SessionType,
)
from skedify.scheduling.timeutils import ensure_utc


MIN_DURATION_MINUTES = 1
MAX_DURATION_MINUTES = 480


def intervals_overlap(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> bool:
    """Half-open overlap test: [a_start, a_end) and [b_start, b_end).

    Touching endpoints (a_end == b_start or b_end == a_start) do not overlap.
    """
    return a_start < b_end and b_start < a_end


def booking_interval(booking: Booking, duration_minutes: int) -> tuple[datetime, datetime]:
    start = ensure_utc(booking.start_time)
    return start, start + timedelta(minutes=duration_minutes)


def has_booking_conflict(
    db: Session,
    provider_id: int,
    start: datetime,
    end: datetime,
    exclude_booking_id: int | None = None,
) -> bool:
    start = ensure_utc(start)
    end = ensure_utc(end)
    # No booking lasts longer than MAX_DURATION_MINUTES, so anything starting
    # earlier than that cannot reach into [start, end).
    earliest_start = start - timedelta(minutes=MAX_DURATION_MINUTES)
    rows = (
        db.query(Booking, SessionType.duration_minutes)
        .join(SessionType, Booking.session_type_id == SessionType.id)
        .filter(SessionType.provider_id == provider_id)
        .filter(Booking.status.in_(ACTIVE_BOOKING_STATUSES))
        .filter(Booking.start_time < end)
        .filter(Booking.start_time > earliest_start)
        .all()
    )
    for booking, duration_minutes in rows:
        if exclude_booking_id is not None and booking.id == exclude_booking_id:
            continue
        booking_start, booking_end = booking_interval(booking, duration_minutes)
        if intervals_overlap(start, end, booking_start, booking_end):
            return True
    return False


def has_event_conflict(
    db: Session,
    provider_id: int,
    start: datetime,
    end: datetime,
    exclude_event_id: int | None = None,
) -> bool:
    start = ensure_utc(start)
    end = ensure_utc(end)
    query = (
        db.query(CalendarEvent)
        .join(Calendar, CalendarEvent.calendar_id == Calendar.id)
        .filter(Calendar.provider_id == provider_id)
        .filter(CalendarEvent.start_time < end)
        .filter(CalendarEvent.end_time > start)
    )
    if exclude_event_id is not None:
        query = query.filter(CalendarEvent.id != exclude_event_id)

    for event in query.all():
        if intervals_overlap(start, end, ensure_utc(event.start_time), ensure_utc(event.end_time)):
            return True
    return False
