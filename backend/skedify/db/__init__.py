from skedify.db.base import Base
from skedify.db.models import (
    Booking,
    BookingStatus,
    Calendar,
    CalendarEvent,
    Provider,
    SessionType,
)

__all__ = [
    "Base",
    "Booking",
    "BookingStatus",
    "Calendar",
    "CalendarEvent",
    "Provider",
    "SessionType",
]
