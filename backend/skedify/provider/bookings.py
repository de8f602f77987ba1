from __future__ import annotations

from datetime import timedelta
from typing import Any

from sqlalchemy.orm import Session

from skedify.db.models import Booking, SessionType
from skedify.scheduling.timeutils import ensure_utc


def list_provider_bookings(db: Session, provider_id: int) -> list[tuple[Booking, SessionType]]:
    return (
        db.query(Booking, SessionType)
        .join(SessionType, Booking.session_type_id == SessionType.id)
        .filter(SessionType.provider_id == provider_id)
        .order_by(Booking.start_time.desc(), Booking.id.desc())
        .all()
    )


def serialize_booking(booking: Booking, session_type: SessionType) -> dict[str, Any]:
    start = ensure_utc(booking.start_time)
    return {
        "id": booking.id,
        "session_type_id": booking.session_type_id,
        "session_type_name": session_type.name,
        "first_name": booking.first_name,
        "last_name": booking.last_name,
        "email": booking.email,
        "phone": booking.phone,
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(minutes=session_type.duration_minutes)).isoformat(),
        "duration_minutes": session_type.duration_minutes,
        "status": booking.status,
        "created_at": ensure_utc(booking.created_at).isoformat() if booking.created_at else None,
    }
