from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy.orm import Session

from skedify.db.models import Booking, BookingStatus, Calendar, CalendarEvent, SessionType
from skedify.scheduling import errors
from skedify.scheduling.conflicts import booking_interval, has_booking_conflict, has_event_conflict
from skedify.scheduling.locks import provider_write_lock
from skedify.scheduling.timeutils import ensure_utc, to_utc


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NO_CALENDAR_WARNING = "No calendar available; event not created"

logger = logging.getLogger("skedify.scheduling.lifecycle")


class CreateBookingArgs(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str | None = None
    phone: str | None = None
    start_time: datetime

    @model_validator(mode="after")
    def validate_contact(self) -> "CreateBookingArgs":
        if not self.email and not self.phone:
            raise ValueError("Either email or phone number is required.")
        if self.email and not EMAIL_PATTERN.match(self.email):
            raise ValueError("Invalid email format.")
        return self


class ApproveBookingArgs(BaseModel):
    calendar_id: int | None = None


def parse_create_booking_args(raw_args: dict[str, Any]) -> CreateBookingArgs:
    return CreateBookingArgs.model_validate(raw_args)


def parse_approve_booking_args(raw_args: dict[str, Any] | None) -> ApproveBookingArgs:
    return ApproveBookingArgs.model_validate(raw_args or {})


@dataclass
class ApprovalResult:
    booking: Booking
    event: CalendarEvent | None = None
    warning: str | None = None


def create_booking(
    db: Session,
    session_type_id: int,
    args: CreateBookingArgs,
    now: datetime | None = None,
) -> Booking:
    session_type = db.get(SessionType, session_type_id)
    if session_type is None:
        raise errors.NotFoundError("Session type not found.", error_code="SESSION_TYPE_NOT_FOUND")

    if not args.email and not args.phone:
        raise errors.ValidationError(
            "Either email or phone number is required.", error_code="CONTACT_REQUIRED"
        )

    now_utc = ensure_utc(now or datetime.now(timezone.utc))
    start = to_utc(args.start_time)
    if start <= now_utc:
        raise errors.ValidationError("Cannot book time in the past.", error_code="START_TIME_IN_PAST")
    end = start + timedelta(minutes=session_type.duration_minutes)

    with provider_write_lock(db, session_type.provider_id):
        if has_booking_conflict(db, session_type.provider_id, start, end):
            raise errors.ConflictError(
                "Time slot is no longer available.", error_code="SLOT_UNAVAILABLE"
            )
        booking = Booking(
            session_type_id=session_type.id,
            first_name=args.first_name,
            last_name=args.last_name,
            email=args.email or None,
            phone=args.phone or None,
            start_time=start,
            status=BookingStatus.PENDING.value,
        )
        db.add(booking)
        db.commit()

    logger.info(
        json.dumps(
            {
                "event": "booking_created",
                "booking_id": booking.id,
                "session_type_id": session_type.id,
                "provider_id": session_type.provider_id,
                "start_time": start.isoformat(),
            }
        )
    )
    return booking


def approve_booking(
    db: Session,
    provider_id: int,
    booking_id: int,
    calendar_id: int | None = None,
) -> ApprovalResult:
    booking, session_type = _get_owned_booking(db, provider_id=provider_id, booking_id=booking_id)

    with provider_write_lock(db, provider_id):
        db.refresh(booking)
        _require_pending(booking)

        start, end = booking_interval(booking, session_type.duration_minutes)
        if has_event_conflict(db, provider_id, start, end):
            raise errors.ConflictError(
                "Cannot approve - time conflict with existing event.",
                error_code="TIME_CONFLICT",
            )

        calendar = _resolve_target_calendar(db, provider_id=provider_id, calendar_id=calendar_id)

        booking.status = BookingStatus.APPROVED.value
        event = None
        if calendar is not None:
            event = CalendarEvent(
                calendar_id=calendar.id,
                booking_id=booking.id,
                title=f"{session_type.name} with {booking.first_name} {booking.last_name}",
                start_time=start,
                end_time=end,
                description=f"Booking contact: {booking.email or booking.phone}",
            )
            db.add(event)
        db.commit()

    warning = None
    if event is None:
        warning = NO_CALENDAR_WARNING
        logger.warning(
            "Booking approved without calendar event booking_id=%s provider_id=%s",
            booking.id,
            provider_id,
        )

    logger.info(
        json.dumps(
            {
                "event": "booking_approved",
                "booking_id": booking.id,
                "provider_id": provider_id,
                "calendar_event_id": event.id if event is not None else None,
            }
        )
    )
    return ApprovalResult(booking=booking, event=event, warning=warning)


def reject_booking(db: Session, provider_id: int, booking_id: int) -> Booking:
    booking, _session_type = _get_owned_booking(db, provider_id=provider_id, booking_id=booking_id)

    with provider_write_lock(db, provider_id):
        db.refresh(booking)
        _require_pending(booking)
        booking.status = BookingStatus.REJECTED.value
        db.commit()

    logger.info(
        json.dumps(
            {
                "event": "booking_rejected",
                "booking_id": booking.id,
                "provider_id": provider_id,
            }
        )
    )
    return booking


def _get_owned_booking(
    db: Session,
    provider_id: int,
    booking_id: int,
) -> tuple[Booking, SessionType]:
    booking = db.get(Booking, booking_id)
    if booking is None:
        raise errors.NotFoundError("Booking not found.", error_code="BOOKING_NOT_FOUND")

    session_type = db.get(SessionType, booking.session_type_id)
    if session_type is None or session_type.provider_id != provider_id:
        raise errors.OwnershipError("Unauthorized.")
    return booking, session_type


def _require_pending(booking: Booking) -> None:
    if booking.status != BookingStatus.PENDING.value:
        raise errors.InvalidTransitionError(f"Booking is already {booking.status}.")


def _resolve_target_calendar(
    db: Session,
    provider_id: int,
    calendar_id: int | None,
) -> Calendar | None:
    if calendar_id is not None:
        calendar = db.get(Calendar, calendar_id)
        if calendar is None:
            raise errors.NotFoundError("Calendar not found.", error_code="CALENDAR_NOT_FOUND")
        if calendar.provider_id != provider_id:
            raise errors.OwnershipError("Unauthorized.")
        return calendar

    return (
        db.query(Calendar)
        .filter(Calendar.provider_id == provider_id)
        .order_by(Calendar.created_at, Calendar.id)
        .first()
    )
