from __future__ import annotations

from datetime import date, datetime, time as dt_time, timedelta, timezone
from typing import Iterator, NamedTuple
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from skedify.db.models import SessionType
from skedify.scheduling.timeutils import get_app_timezone


WORKING_DAY_START = dt_time(9, 0)
WORKING_DAY_END = dt_time(17, 0)
SLOT_INCREMENT_MINUTES = 15


class Slot(NamedTuple):
    start: datetime
    end: datetime


def generate_candidate_slots(
    day: date,
    duration_minutes: int,
    tz: ZoneInfo | None = None,
) -> list[Slot]:
    """Every 15-minute start in [09:00, 17:00) local time on ``day``.

    The window only bounds the start; a slot's end may run past 17:00 when the
    duration does not fit the remaining window.
    """
    duration = timedelta(minutes=duration_minutes)
    return [Slot(start, start + duration) for start in _iter_slot_starts(day, tz)]


def slots_for_session_type(db: Session, session_type_id: int, day: date) -> list[Slot]:
    session_type = db.get(SessionType, session_type_id)
    if session_type is None:
        return []
    return generate_candidate_slots(day, session_type.duration_minutes)


def _iter_slot_starts(day: date, tz: ZoneInfo | None = None) -> Iterator[datetime]:
    tzinfo = tz or get_app_timezone()
    cursor = datetime.combine(day, WORKING_DAY_START, tzinfo=tzinfo)
    window_end = datetime.combine(day, WORKING_DAY_END, tzinfo=tzinfo)
    step = timedelta(minutes=SLOT_INCREMENT_MINUTES)
    while cursor < window_end:
        yield cursor.astimezone(timezone.utc)
        cursor += step
