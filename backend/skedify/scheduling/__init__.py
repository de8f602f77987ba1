from skedify.scheduling.availability import (
    BusyInterval,
    fetch_day_busy_intervals,
    filter_available_slots,
    get_available_slots,
    parse_requested_date,
)
from skedify.scheduling.conflicts import (
    MAX_DURATION_MINUTES,
    MIN_DURATION_MINUTES,
    has_booking_conflict,
    has_event_conflict,
    intervals_overlap,
)
from skedify.scheduling.lifecycle import (
    ApprovalResult,
    approve_booking,
    create_booking,
    parse_approve_booking_args,
    parse_create_booking_args,
    reject_booking,
)
from skedify.scheduling.slots import (
    SLOT_INCREMENT_MINUTES,
    Slot,
    generate_candidate_slots,
    slots_for_session_type,
)

__all__ = [
    "BusyInterval",
    "fetch_day_busy_intervals",
    "filter_available_slots",
    "get_available_slots",
    "parse_requested_date",
    "MAX_DURATION_MINUTES",
    "MIN_DURATION_MINUTES",
    "has_booking_conflict",
    "has_event_conflict",
    "intervals_overlap",
    "ApprovalResult",
    "approve_booking",
    "create_booking",
    "parse_approve_booking_args",
    "parse_create_booking_args",
    "reject_booking",
    "SLOT_INCREMENT_MINUTES",
    "Slot",
    "generate_candidate_slots",
    "slots_for_session_type",
]
