from __future__ import annotations

import logging
import os
from datetime import date, datetime, time as dt_time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from skedify.config import APP_TIMEZONE

logger = logging.getLogger("skedify.scheduling")


def get_app_timezone() -> ZoneInfo:
    """Timezone used for every date comparison; one per deployment."""
    name = os.getenv("APP_TIMEZONE", APP_TIMEZONE) or "UTC"
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown APP_TIMEZONE=%s; falling back to UTC.", name)
        return ZoneInfo("UTC")


def ensure_utc(value: datetime) -> datetime:
    """Normalize a stored instant. Naive values coming back from the store are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_utc(value: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Normalize a caller-supplied instant. Naive values are wall-clock in the app timezone."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz or get_app_timezone())
    return value.astimezone(timezone.utc)


def local_day_bounds(day: date, tz: ZoneInfo | None = None) -> tuple[datetime, datetime]:
    tzinfo = tz or get_app_timezone()
    day_start = datetime.combine(day, dt_time.min, tzinfo=tzinfo)
    day_end = datetime.combine(day + timedelta(days=1), dt_time.min, tzinfo=tzinfo)
    return day_start.astimezone(timezone.utc), day_end.astimezone(timezone.utc)
