from skedify.provider.accounts import (
    LoginArgs,
    RegisterProviderArgs,
    authenticate_provider,
    get_provider,
    register_provider,
    serialize_provider,
)
from skedify.provider.bookings import list_provider_bookings, serialize_booking
from skedify.provider.calendars import (
    CalendarArgs,
    CreateEventArgs,
    add_event,
    create_calendar,
    delete_calendar,
    get_calendar,
    list_calendars,
    list_events,
    serialize_calendar,
    serialize_event,
    update_calendar,
)
from skedify.provider.session_types import (
    SessionTypeArgs,
    create_session_type,
    delete_session_type,
    find_session_type_by_link,
    get_session_type,
    list_session_types,
    serialize_public_session_type,
    serialize_session_type,
    update_session_type,
)

__all__ = [
    "LoginArgs",
    "RegisterProviderArgs",
    "authenticate_provider",
    "get_provider",
    "register_provider",
    "serialize_provider",
    "list_provider_bookings",
    "serialize_booking",
    "CalendarArgs",
    "CreateEventArgs",
    "add_event",
    "create_calendar",
    "delete_calendar",
    "get_calendar",
    "list_calendars",
    "list_events",
    "serialize_calendar",
    "serialize_event",
    "update_calendar",
    "SessionTypeArgs",
    "create_session_type",
    "delete_session_type",
    "find_session_type_by_link",
    "get_session_type",
    "list_session_types",
    "serialize_public_session_type",
    "serialize_session_type",
    "update_session_type",
]
