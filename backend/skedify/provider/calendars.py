from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy.orm import Session

from skedify.db.models import Calendar, CalendarEvent
from skedify.scheduling import errors
from skedify.scheduling.conflicts import has_event_conflict
from skedify.scheduling.locks import provider_write_lock
from skedify.scheduling.timeutils import ensure_utc, to_utc

logger = logging.getLogger("skedify.provider.calendars")


class CalendarArgs(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    description: str | None = None


class CreateEventArgs(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1)
    start_time: datetime
    end_time: datetime
    description: str | None = None

    @model_validator(mode="after")
    def validate_range(self) -> "CreateEventArgs":
        if to_utc(self.start_time) >= to_utc(self.end_time):
            raise ValueError("Start time must be before end time.")
        return self


def parse_calendar_args(raw_args: dict[str, Any]) -> CalendarArgs:
    return CalendarArgs.model_validate(raw_args)


def parse_create_event_args(raw_args: dict[str, Any]) -> CreateEventArgs:
    return CreateEventArgs.model_validate(raw_args)


def list_calendars(db: Session, provider_id: int) -> list[Calendar]:
    return (
        db.query(Calendar)
        .filter(Calendar.provider_id == provider_id)
        .order_by(Calendar.created_at, Calendar.id)
        .all()
    )


def get_calendar(db: Session, provider_id: int, calendar_id: int) -> Calendar:
    calendar = db.get(Calendar, calendar_id)
    if calendar is None or calendar.provider_id != provider_id:
        raise errors.NotFoundError("Calendar not found.", error_code="CALENDAR_NOT_FOUND")
    return calendar


def create_calendar(db: Session, provider_id: int, args: CalendarArgs) -> Calendar:
    calendar = Calendar(
        provider_id=provider_id,
        name=args.name,
        description=args.description,
    )
    db.add(calendar)
    db.commit()
    return calendar


def update_calendar(db: Session, provider_id: int, calendar_id: int, args: CalendarArgs) -> Calendar:
    calendar = get_calendar(db, provider_id=provider_id, calendar_id=calendar_id)
    calendar.name = args.name
    calendar.description = args.description
    db.commit()
    return calendar


def delete_calendar(db: Session, provider_id: int, calendar_id: int) -> None:
    calendar = get_calendar(db, provider_id=provider_id, calendar_id=calendar_id)
    db.delete(calendar)
    db.commit()


def list_events(db: Session, provider_id: int, calendar_id: int) -> list[CalendarEvent]:
    calendar = get_calendar(db, provider_id=provider_id, calendar_id=calendar_id)
    return (
        db.query(CalendarEvent)
        .filter(CalendarEvent.calendar_id == calendar.id)
        .order_by(CalendarEvent.start_time, CalendarEvent.id)
        .all()
    )


def add_event(
    db: Session,
    provider_id: int,
    calendar_id: int,
    args: CreateEventArgs,
) -> CalendarEvent:
    calendar = get_calendar(db, provider_id=provider_id, calendar_id=calendar_id)
    start = to_utc(args.start_time)
    end = to_utc(args.end_time)

    with provider_write_lock(db, provider_id):
        if has_event_conflict(db, provider_id, start, end):
            raise errors.ConflictError("Time conflict with existing event.")
        event = CalendarEvent(
            calendar_id=calendar.id,
            title=args.title,
            start_time=start,
            end_time=end,
            description=args.description,
        )
        db.add(event)
        db.commit()

    logger.info(
        json.dumps(
            {
                "event": "calendar_event_created",
                "calendar_event_id": event.id,
                "calendar_id": calendar.id,
                "provider_id": provider_id,
            }
        )
    )
    return event


def serialize_calendar(calendar: Calendar) -> dict[str, Any]:
    return {
        "id": calendar.id,
        "provider_id": calendar.provider_id,
        "name": calendar.name,
        "description": calendar.description,
        "created_at": ensure_utc(calendar.created_at).isoformat() if calendar.created_at else None,
    }


def serialize_event(event: CalendarEvent) -> dict[str, Any]:
    return {
        "id": event.id,
        "calendar_id": event.calendar_id,
        "booking_id": event.booking_id,
        "title": event.title,
        "start_time": ensure_utc(event.start_time).isoformat(),
        "end_time": ensure_utc(event.end_time).isoformat(),
        "description": event.description,
    }
