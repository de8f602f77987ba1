from __future__ import annotations

from datetime import timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from skedify.db.models import ACTIVE_BOOKING_STATUSES, Booking, SessionType
from skedify.scheduling import errors
from skedify.scheduling.conflicts import (
    MAX_DURATION_MINUTES,
    MIN_DURATION_MINUTES,
    has_booking_conflict,
)
from skedify.scheduling.locks import provider_write_lock
from skedify.scheduling.timeutils import ensure_utc


class SessionTypeArgs(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    duration_minutes: int = Field(ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)


def parse_session_type_args(raw_args: dict[str, Any]) -> SessionTypeArgs:
    return SessionTypeArgs.model_validate(raw_args)


def list_session_types(db: Session, provider_id: int) -> list[SessionType]:
    return (
        db.query(SessionType)
        .filter(SessionType.provider_id == provider_id)
        .order_by(SessionType.created_at, SessionType.id)
        .all()
    )


def get_session_type(db: Session, provider_id: int, session_type_id: int) -> SessionType:
    session_type = db.get(SessionType, session_type_id)
    if session_type is None or session_type.provider_id != provider_id:
        raise errors.NotFoundError("Session type not found.", error_code="SESSION_TYPE_NOT_FOUND")
    return session_type


def find_session_type_by_link(db: Session, unique_link: str) -> SessionType:
    link = (unique_link or "").strip()
    session_type = None
    if link:
        session_type = db.query(SessionType).filter(SessionType.unique_link == link).first()
    if session_type is None:
        raise errors.NotFoundError("Session type not found.", error_code="SESSION_TYPE_NOT_FOUND")
    return session_type


def create_session_type(db: Session, provider_id: int, args: SessionTypeArgs) -> SessionType:
    session_type = SessionType(
        provider_id=provider_id,
        name=args.name,
        duration_minutes=args.duration_minutes,
    )
    db.add(session_type)
    db.commit()
    return session_type


def update_session_type(
    db: Session,
    provider_id: int,
    session_type_id: int,
    args: SessionTypeArgs,
) -> SessionType:
    session_type = get_session_type(db, provider_id=provider_id, session_type_id=session_type_id)
    if args.duration_minutes <= session_type.duration_minutes:
        session_type.name = args.name
        session_type.duration_minutes = args.duration_minutes
        db.commit()
        return session_type

    with provider_write_lock(db, provider_id):
        _require_room_for_duration(db, session_type, args.duration_minutes)
        session_type.name = args.name
        session_type.duration_minutes = args.duration_minutes
        db.commit()
    return session_type


def _require_room_for_duration(db: Session, session_type: SessionType, duration_minutes: int) -> None:
    """Raise if any active booking of this type would overlap another once lengthened.

    Other bookings are compared at their current length. Two lengthened bookings
    of this type that would collide already overlap the later one's current interval.
    """
    bookings = (
        db.query(Booking)
        .filter(Booking.session_type_id == session_type.id)
        .filter(Booking.status.in_(ACTIVE_BOOKING_STATUSES))
        .all()
    )
    for booking in bookings:
        start = ensure_utc(booking.start_time)
        end = start + timedelta(minutes=duration_minutes)
        if has_booking_conflict(
            db, session_type.provider_id, start, end, exclude_booking_id=booking.id
        ):
            raise errors.ConflictError(
                "Longer duration would overlap existing bookings.",
                error_code="TIME_CONFLICT",
            )


def delete_session_type(db: Session, provider_id: int, session_type_id: int) -> None:
    session_type = get_session_type(db, provider_id=provider_id, session_type_id=session_type_id)
    db.delete(session_type)
    db.commit()


def serialize_session_type(session_type: SessionType) -> dict[str, Any]:
    return {
        "id": session_type.id,
        "provider_id": session_type.provider_id,
        "name": session_type.name,
        "duration_minutes": session_type.duration_minutes,
        "unique_link": session_type.unique_link,
        "created_at": (
            ensure_utc(session_type.created_at).isoformat() if session_type.created_at else None
        ),
    }


def serialize_public_session_type(session_type: SessionType) -> dict[str, Any]:
    return {
        "id": session_type.id,
        "name": session_type.name,
        "duration_minutes": session_type.duration_minutes,
    }
