import json
import logging
import time
import uuid
from typing import Any

from fastapi import Body, Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from skedify.db.session import SessionLocal
from skedify.provider.accounts import (
    authenticate_provider,
    get_provider,
    parse_login_args,
    parse_register_provider_args,
    register_provider,
    serialize_provider,
)
from skedify.provider.bookings import list_provider_bookings, serialize_booking
from skedify.provider.calendars import (
    add_event,
    create_calendar,
    delete_calendar,
    get_calendar,
    list_calendars,
    list_events,
    parse_calendar_args,
    parse_create_event_args,
    serialize_calendar,
    serialize_event,
    update_calendar,
)
from skedify.provider.session_types import (
    create_session_type,
    delete_session_type,
    find_session_type_by_link,
    get_session_type,
    list_session_types,
    parse_session_type_args,
    serialize_public_session_type,
    serialize_session_type,
    update_session_type,
)
from skedify.scheduling.availability import get_available_slots, parse_requested_date
from skedify.scheduling.errors import SchedulingError, map_validation_error
from skedify.scheduling.lifecycle import (
    approve_booking,
    create_booking,
    parse_approve_booking_args,
    parse_create_booking_args,
    reject_booking,
)
from skedify.security.dependencies import require_provider
from skedify.security.tokens import build_access_token, resolve_token_secret


def configure_logging() -> logging.Logger:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    return logging.getLogger("skedify.backend")


logger = configure_logging()
app = FastAPI(title="Skedify Backend")


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    start_time = time.perf_counter()

    response = await call_next(request)

    duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["x-request-id"] = request_id

    logger.info(
        json.dumps(
            {
                "event": "http_request",
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            }
        )
    )
    return response


def _error_response(exc: SchedulingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


def _invalid_args_response(exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"ok": False, **map_validation_error(exc)})


def _system_down(human_message: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "error_code": "SYSTEM_DOWN",
            "human_message": human_message,
        },
    )


def _issue_token(provider_id: int) -> str | None:
    secret = resolve_token_secret()
    if not secret:
        logger.error("Cannot issue provider token: AUTH_TOKEN_SECRET is required in prod.")
        return None
    return build_access_token(provider_id=provider_id, secret=secret)


@app.get("/health")
async def health():
    return JSONResponse(content={"ok": True})


@app.post("/v1/auth/register")
def auth_register(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_register_provider_args(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        provider = register_provider(db=db, args=args)
        token = _issue_token(provider.id)
        if token is None:
            return _system_down("Authentication is not configured.")
        return JSONResponse(
            status_code=201,
            content={"ok": True, "data": {"token": token, "provider": serialize_provider(provider)}},
        )
    except SchedulingError as exc:
        return _error_response(exc)
    except Exception:
        db.rollback()
        logger.exception("Provider registration failed")
        return _system_down("Temporary issue registering provider.")
    finally:
        db.close()


@app.post("/v1/auth/login")
def auth_login(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_login_args(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        provider = authenticate_provider(db=db, args=args)
        token = _issue_token(provider.id)
        if token is None:
            return _system_down("Authentication is not configured.")
        return JSONResponse(
            content={"ok": True, "data": {"token": token, "provider": serialize_provider(provider)}}
        )
    except SchedulingError as exc:
        return _error_response(exc)
    finally:
        db.close()


@app.get("/v1/auth/me")
def auth_me(provider_id: int = Depends(require_provider)) -> JSONResponse:
    db = SessionLocal()
    try:
        provider = get_provider(db=db, provider_id=provider_id)
        return JSONResponse(content={"ok": True, "data": {"provider": serialize_provider(provider)}})
    except SchedulingError as exc:
        return _error_response(exc)
    finally:
        db.close()


@app.get("/v1/calendars")
def calendars_list(provider_id: int = Depends(require_provider)) -> JSONResponse:
    db = SessionLocal()
    try:
        calendars = list_calendars(db=db, provider_id=provider_id)
        return JSONResponse(
            content={"ok": True, "data": {"calendars": [serialize_calendar(c) for c in calendars]}}
        )
    finally:
        db.close()


@app.post("/v1/calendars")
def calendars_create(
    payload: dict[str, Any],
    provider_id: int = Depends(require_provider),
) -> JSONResponse:
    try:
        args = parse_calendar_args(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        calendar = create_calendar(db=db, provider_id=provider_id, args=args)
        return JSONResponse(
            status_code=201,
            content={"ok": True, "data": {"calendar": serialize_calendar(calendar)}},
        )
    except Exception:
        db.rollback()
        logger.exception("Calendar creation failed provider_id=%s", provider_id)
        return _system_down("Temporary issue creating calendar.")
    finally:
        db.close()


@app.get("/v1/calendars/{calendar_id}")
def calendars_get(calendar_id: int, provider_id: int = Depends(require_provider)) -> JSONResponse:
    db = SessionLocal()
    try:
        calendar = get_calendar(db=db, provider_id=provider_id, calendar_id=calendar_id)
        return JSONResponse(content={"ok": True, "data": {"calendar": serialize_calendar(calendar)}})
    except SchedulingError as exc:
        return _error_response(exc)
    finally:
        db.close()


@app.put("/v1/calendars/{calendar_id}")
def calendars_update(
    calendar_id: int,
    payload: dict[str, Any],
    provider_id: int = Depends(require_provider),
) -> JSONResponse:
    try:
        args = parse_calendar_args(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        calendar = update_calendar(
            db=db,
            provider_id=provider_id,
            calendar_id=calendar_id,
            args=args,
        )
        return JSONResponse(content={"ok": True, "data": {"calendar": serialize_calendar(calendar)}})
    except SchedulingError as exc:
        return _error_response(exc)
    except Exception:
        db.rollback()
        logger.exception("Calendar update failed calendar_id=%s", calendar_id)
        return _system_down("Temporary issue updating calendar.")
    finally:
        db.close()


@app.delete("/v1/calendars/{calendar_id}")
def calendars_delete(calendar_id: int, provider_id: int = Depends(require_provider)) -> JSONResponse:
    db = SessionLocal()
    try:
        delete_calendar(db=db, provider_id=provider_id, calendar_id=calendar_id)
        return JSONResponse(content={"ok": True, "data": {"calendar_id": calendar_id}})
    except SchedulingError as exc:
        return _error_response(exc)
    except Exception:
        db.rollback()
        logger.exception("Calendar delete failed calendar_id=%s", calendar_id)
        return _system_down("Temporary issue deleting calendar.")
    finally:
        db.close()


@app.get("/v1/calendars/{calendar_id}/events")
def calendar_events_list(
    calendar_id: int,
    provider_id: int = Depends(require_provider),
) -> JSONResponse:
    db = SessionLocal()
    try:
        events = list_events(db=db, provider_id=provider_id, calendar_id=calendar_id)
        return JSONResponse(
            content={"ok": True, "data": {"events": [serialize_event(e) for e in events]}}
        )
    except SchedulingError as exc:
        return _error_response(exc)
    finally:
        db.close()


@app.post("/v1/calendars/{calendar_id}/events")
def calendar_events_create(
    calendar_id: int,
    payload: dict[str, Any],
    provider_id: int = Depends(require_provider),
) -> JSONResponse:
    try:
        args = parse_create_event_args(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        event = add_event(db=db, provider_id=provider_id, calendar_id=calendar_id, args=args)
        return JSONResponse(
            status_code=201,
            content={"ok": True, "data": {"event": serialize_event(event)}},
        )
    except SchedulingError as exc:
        return _error_response(exc)
    except Exception:
        db.rollback()
        logger.exception("Calendar event creation failed calendar_id=%s", calendar_id)
        return _system_down("Temporary issue adding event.")
    finally:
        db.close()


@app.get("/v1/session-types")
def session_types_list(provider_id: int = Depends(require_provider)) -> JSONResponse:
    db = SessionLocal()
    try:
        session_types = list_session_types(db=db, provider_id=provider_id)
        return JSONResponse(
            content={
                "ok": True,
                "data": {"session_types": [serialize_session_type(s) for s in session_types]},
            }
        )
    finally:
        db.close()


@app.post("/v1/session-types")
def session_types_create(
    payload: dict[str, Any],
    provider_id: int = Depends(require_provider),
) -> JSONResponse:
    try:
        args = parse_session_type_args(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        session_type = create_session_type(db=db, provider_id=provider_id, args=args)
        return JSONResponse(
            status_code=201,
            content={"ok": True, "data": {"session_type": serialize_session_type(session_type)}},
        )
    except Exception:
        db.rollback()
        logger.exception("Session type creation failed provider_id=%s", provider_id)
        return _system_down("Temporary issue creating session type.")
    finally:
        db.close()


@app.get("/v1/session-types/{session_type_id}")
def session_types_get(
    session_type_id: int,
    provider_id: int = Depends(require_provider),
) -> JSONResponse:
    db = SessionLocal()
    try:
        session_type = get_session_type(
            db=db,
            provider_id=provider_id,
            session_type_id=session_type_id,
        )
        return JSONResponse(
            content={"ok": True, "data": {"session_type": serialize_session_type(session_type)}}
        )
    except SchedulingError as exc:
        return _error_response(exc)
    finally:
        db.close()


@app.put("/v1/session-types/{session_type_id}")
def session_types_update(
    session_type_id: int,
    payload: dict[str, Any],
    provider_id: int = Depends(require_provider),
) -> JSONResponse:
    try:
        args = parse_session_type_args(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        session_type = update_session_type(
            db=db,
            provider_id=provider_id,
            session_type_id=session_type_id,
            args=args,
        )
        return JSONResponse(
            content={"ok": True, "data": {"session_type": serialize_session_type(session_type)}}
        )
    except SchedulingError as exc:
        return _error_response(exc)
    except Exception:
        db.rollback()
        logger.exception("Session type update failed session_type_id=%s", session_type_id)
        return _system_down("Temporary issue updating session type.")
    finally:
        db.close()


@app.delete("/v1/session-types/{session_type_id}")
def session_types_delete(
    session_type_id: int,
    provider_id: int = Depends(require_provider),
) -> JSONResponse:
    db = SessionLocal()
    try:
        delete_session_type(db=db, provider_id=provider_id, session_type_id=session_type_id)
        return JSONResponse(content={"ok": True, "data": {"session_type_id": session_type_id}})
    except SchedulingError as exc:
        return _error_response(exc)
    except Exception:
        db.rollback()
        logger.exception("Session type delete failed session_type_id=%s", session_type_id)
        return _system_down("Temporary issue deleting session type.")
    finally:
        db.close()


@app.get("/v1/bookings")
def bookings_list(provider_id: int = Depends(require_provider)) -> JSONResponse:
    db = SessionLocal()
    try:
        rows = list_provider_bookings(db=db, provider_id=provider_id)
        return JSONResponse(
            content={
                "ok": True,
                "data": {"bookings": [serialize_booking(b, st) for b, st in rows]},
            }
        )
    finally:
        db.close()


@app.put("/v1/bookings/{booking_id}/approve")
def bookings_approve(
    booking_id: int,
    payload: dict[str, Any] | None = Body(default=None),
    provider_id: int = Depends(require_provider),
) -> JSONResponse:
    try:
        args = parse_approve_booking_args(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        result = approve_booking(
            db=db,
            provider_id=provider_id,
            booking_id=booking_id,
            calendar_id=args.calendar_id,
        )
        session_type = get_session_type(
            db=db,
            provider_id=provider_id,
            session_type_id=result.booking.session_type_id,
        )
        data: dict[str, Any] = {
            "booking": serialize_booking(result.booking, session_type),
            "event": serialize_event(result.event) if result.event is not None else None,
        }
        if result.warning:
            data["warning"] = result.warning
        return JSONResponse(content={"ok": True, "data": data})
    except SchedulingError as exc:
        return _error_response(exc)
    except Exception:
        logger.exception("Booking approval failed booking_id=%s", booking_id)
        return _system_down("Temporary issue approving booking.")
    finally:
        db.close()


@app.put("/v1/bookings/{booking_id}/reject")
def bookings_reject(booking_id: int, provider_id: int = Depends(require_provider)) -> JSONResponse:
    db = SessionLocal()
    try:
        booking = reject_booking(db=db, provider_id=provider_id, booking_id=booking_id)
        session_type = get_session_type(
            db=db,
            provider_id=provider_id,
            session_type_id=booking.session_type_id,
        )
        return JSONResponse(
            content={"ok": True, "data": {"booking": serialize_booking(booking, session_type)}}
        )
    except SchedulingError as exc:
        return _error_response(exc)
    except Exception:
        logger.exception("Booking rejection failed booking_id=%s", booking_id)
        return _system_down("Temporary issue rejecting booking.")
    finally:
        db.close()


@app.get("/v1/book/{unique_link}")
def public_booking_page(unique_link: str, date: str | None = None) -> JSONResponse:
    db = SessionLocal()
    try:
        session_type = find_session_type_by_link(db=db, unique_link=unique_link)
        available_slots = []
        if date is not None:
            requested_day = parse_requested_date(date)
            available_slots = get_available_slots(db=db, session_type=session_type, day=requested_day)
        return JSONResponse(
            content={
                "ok": True,
                "data": {
                    "session_type": serialize_public_session_type(session_type),
                    "available_slots": [slot.isoformat() for slot in available_slots],
                },
            }
        )
    except SchedulingError as exc:
        return _error_response(exc)
    finally:
        db.close()


@app.post("/v1/book/{unique_link}")
def public_create_booking(unique_link: str, payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_create_booking_args(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        session_type = find_session_type_by_link(db=db, unique_link=unique_link)
        booking = create_booking(db=db, session_type_id=session_type.id, args=args)
        return JSONResponse(
            status_code=201,
            content={"ok": True, "data": {"booking": serialize_booking(booking, session_type)}},
        )
    except SchedulingError as exc:
        return _error_response(exc)
    except Exception:
        logger.exception("Public booking failed unique_link=%s", unique_link)
        return _system_down("Temporary issue creating booking.")
    finally:
        db.close()
