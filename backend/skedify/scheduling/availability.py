from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Iterable, NamedTuple
from zoneinfo import ZoneInfo

import dateparser
from sqlalchemy.orm import Session

from skedify.db.models import (
    ACTIVE_BOOKING_STATUSES,
    Booking,
    Calendar,
    CalendarEvent,
    SessionType,
)
from skedify.scheduling import errors
from skedify.scheduling.conflicts import booking_interval, intervals_overlap
from skedify.scheduling.slots import Slot, generate_candidate_slots
from skedify.scheduling.timeutils import ensure_utc, get_app_timezone, local_day_bounds


class BusyInterval(NamedTuple):
    start: datetime
    end: datetime


def filter_available_slots(
    candidates: Iterable[Slot],
    booking_intervals: Iterable[BusyInterval],
    event_intervals: Iterable[BusyInterval],
) -> list[datetime]:
    busy = list(booking_intervals) + list(event_intervals)
    available: list[datetime] = []
    for slot in candidates:
        if any(intervals_overlap(slot.start, slot.end, item.start, item.end) for item in busy):
            continue
        available.append(slot.start)
    return available


def fetch_day_busy_intervals(
    db: Session,
    provider_id: int,
    day: date,
    tz: ZoneInfo | None = None,
) -> tuple[list[BusyInterval], list[BusyInterval]]:
    """Bookings and events of ``provider_id`` whose start falls on ``day`` locally.

    Matching is on the start's date only, so an item that starts the previous
    evening and runs past midnight is not seen.
    """
    day_start, day_end = local_day_bounds(day, tz)

    booking_rows = (
        db.query(Booking, SessionType.duration_minutes)
        .join(SessionType, Booking.session_type_id == SessionType.id)
        .filter(SessionType.provider_id == provider_id)
        .filter(Booking.status.in_(ACTIVE_BOOKING_STATUSES))
        .filter(Booking.start_time >= day_start)
        .filter(Booking.start_time < day_end)
        .all()
    )
    booking_intervals = [
        BusyInterval(*booking_interval(booking, duration_minutes))
        for booking, duration_minutes in booking_rows
    ]

    events = (
        db.query(CalendarEvent)
        .join(Calendar, CalendarEvent.calendar_id == Calendar.id)
        .filter(Calendar.provider_id == provider_id)
        .filter(CalendarEvent.start_time >= day_start)
        .filter(CalendarEvent.start_time < day_end)
        .all()
    )
    event_intervals = [
        BusyInterval(ensure_utc(event.start_time), ensure_utc(event.end_time)) for event in events
    ]
    return booking_intervals, event_intervals


def get_available_slots(db: Session, session_type: SessionType, day: date) -> list[datetime]:
    tz = get_app_timezone()
    candidates = generate_candidate_slots(day, session_type.duration_minutes, tz=tz)
    booking_intervals, event_intervals = fetch_day_busy_intervals(
        db=db,
        provider_id=session_type.provider_id,
        day=day,
        tz=tz,
    )
    return filter_available_slots(candidates, booking_intervals, event_intervals)


def parse_requested_date(text: str, now_dt: datetime | None = None) -> date:
    """Accepts ``YYYY-MM-DD`` (or a full ISO timestamp) and falls back to
    natural language such as "tomorrow" relative to ``now_dt``."""
    cleaned = (text or "").strip()
    if not cleaned:
        raise errors.ValidationError("Date is required.", error_code="INVALID_DATE")

    tz = get_app_timezone()
    try:
        return date.fromisoformat(cleaned)
    except ValueError:
        pass
    try:
        parsed_iso = datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
    except ValueError:
        parsed_iso = None
    if parsed_iso is not None:
        if parsed_iso.tzinfo is None:
            return parsed_iso.date()
        return parsed_iso.astimezone(tz).date()

    reference_dt = now_dt or datetime.now(timezone.utc)
    if reference_dt.tzinfo is None:
        reference_dt = reference_dt.replace(tzinfo=timezone.utc)
    parsed = dateparser.parse(
        cleaned,
        settings={
            "RETURN_AS_TIMEZONE_AWARE": True,
            "TIMEZONE": str(tz.key),
            "TO_TIMEZONE": str(tz.key),
            "RELATIVE_BASE": reference_dt.astimezone(tz),
            "PREFER_DATES_FROM": "future",
        },
    )
    if parsed is None:
        raise errors.ValidationError("Invalid date format.", error_code="INVALID_DATE")
    if parsed.tzinfo is None:
        return parsed.date()
    return parsed.astimezone(tz).date()
