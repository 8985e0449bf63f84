"""
Day keys and wall-clock conversion for facility-local timestamps
"""
import re
from datetime import date, datetime, timedelta
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import settings
from app.core.exceptions import InvalidInputError

DAY_KEY_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def load_timezone(name: Optional[str]) -> ZoneInfo:
    tz_name = name or settings.DEFAULT_TIMEZONE
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise InvalidInputError(f"Unknown timezone: {tz_name}", {"timezone": tz_name})


def local_now(tz: ZoneInfo) -> datetime:
    """Current facility wall-clock time, naive"""
    return datetime.now(tz).replace(tzinfo=None)


def to_local(value: datetime, tz: ZoneInfo) -> datetime:
    """Aware timestamps are converted to facility time; naive ones are already local"""
    if value.tzinfo is not None and value.utcoffset() is not None:
        return value.astimezone(tz).replace(tzinfo=None)
    return value.replace(tzinfo=None)


def parse_day(value: str, field: str = "day") -> str:
    """Validate a YYYY-MM-DD day key and return it unchanged"""
    if not isinstance(value, str) or not DAY_KEY_PATTERN.fullmatch(value):
        raise InvalidInputError(f"Invalid {field} format. Use YYYY-MM-DD", {field: value})
    try:
        date.fromisoformat(value)
    except ValueError:
        raise InvalidInputError(f"Invalid {field} format. Use YYYY-MM-DD", {field: value})
    return value


def parse_range(date_from: str, date_to: str) -> Tuple[str, str]:
    parse_day(date_from, "date_from")
    parse_day(date_to, "date_to")
    if date_from > date_to:
        raise InvalidInputError(
            "date_from must not be after date_to",
            {"date_from": date_from, "date_to": date_to}
        )
    return date_from, date_to


def check_bounds(occurred_at: datetime, now: datetime) -> None:
    """Reject timestamps before the earliest supported year or too far ahead of now"""
    if occurred_at.year < settings.EARLIEST_EVENT_YEAR:
        raise InvalidInputError(
            f"Timestamp before {settings.EARLIEST_EVENT_YEAR} is not accepted",
            {"occurred_at": occurred_at.isoformat()}
        )
    if occurred_at > now + timedelta(minutes=settings.MAX_FUTURE_SKEW_MINUTES):
        raise InvalidInputError(
            "Timestamp is in the future",
            {"occurred_at": occurred_at.isoformat(), "now": now.isoformat()}
        )
