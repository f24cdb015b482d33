"""Date, time and timezone helpers for building calendar event times.

Scheduled meetings are sent to the calendar as literal local wall-clock
times tagged with an IANA timezone name. Nothing is converted through a UTC
instant, so the time the user typed is the time the calendar stores.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date as date_cls, datetime, timedelta
from typing import Any, Dict, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

MINUTES_PER_HOUR = 60
HOURS_PER_DAY = 24
MAX_DURATION_MINUTES = 24 * 60


@dataclass(frozen=True)
class EventTimes:
    """Start/end pair ready for a calendar event body."""

    start: str
    end: str
    timezone: str

    def to_event_fields(self) -> Dict[str, Any]:
        return {
            "start": {"dateTime": self.start, "timeZone": self.timezone},
            "end": {"dateTime": self.end, "timeZone": self.timezone},
        }


def resolve_timezone(tz_name: Optional[str], default: str = "UTC") -> str:
    """Return tz_name if it is a known IANA zone, otherwise the default."""
    if not tz_name:
        return default
    try:
        ZoneInfo(tz_name)
        return tz_name
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {tz_name}; defaulting to {default}")
    return default


def parse_clock(value: str) -> Tuple[int, int]:
    match = TIME_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"time '{value}' must be in HH:MM format (e.g., 09:30)")
    return int(match.group(1)), int(match.group(2))


def parse_date(value: str) -> date_cls:
    if not DATE_PATTERN.match(value or ""):
        raise ValueError(f"date '{value}' must be in YYYY-MM-DD format")
    return date_cls.fromisoformat(value)


def add_minutes_to_clock(hours: int, minutes: int, duration: int) -> Tuple[int, int, int]:
    """Add duration minutes to an hour/minute pair.

    Returns (hours, minutes, day_offset) where hours is wrapped into 0-23 and
    day_offset counts the midnights crossed.
    """
    total_minutes = minutes + duration
    total_hours = hours + total_minutes // MINUTES_PER_HOUR
    end_minutes = total_minutes % MINUTES_PER_HOUR
    day_offset, end_hours = divmod(total_hours, HOURS_PER_DAY)
    return end_hours, end_minutes, day_offset


def _wall_clock(day: date_cls, hours: int, minutes: int) -> str:
    return f"{day.isoformat()}T{hours:02d}:{minutes:02d}:00"


def format_event_times(
    date: str,
    time: str,
    duration: int,
    timezone: Optional[str] = None,
    default_timezone: str = "UTC",
) -> EventTimes:
    """Build the start/end of a scheduled meeting from form fields.

    An end time past midnight moves the end date to the following day.
    """
    if duration <= 0:
        raise ValueError(f"duration must be a positive number of minutes, got {duration}")

    start_day = parse_date(date)
    hours, minutes = parse_clock(time)
    end_hours, end_minutes, day_offset = add_minutes_to_clock(hours, minutes, duration)
    try:
        end_day = start_day + timedelta(days=day_offset)
    except OverflowError as e:
        raise ValueError(
            f"meeting ending {day_offset} day(s) after {date} is out of range"
        ) from e

    return EventTimes(
        start=_wall_clock(start_day, hours, minutes),
        end=_wall_clock(end_day, end_hours, end_minutes),
        timezone=resolve_timezone(timezone, default_timezone),
    )


def instant_window(
    timezone: str, duration: int = 30, now: Optional[datetime] = None
) -> EventTimes:
    """Start now and run for duration minutes."""
    tz_name = resolve_timezone(timezone)
    start = (now or datetime.now(ZoneInfo(tz_name))).replace(microsecond=0)
    if start.tzinfo is None:
        start = start.replace(tzinfo=ZoneInfo(tz_name))
    end = start + timedelta(minutes=duration)
    return EventTimes(start=start.isoformat(), end=end.isoformat(), timezone=tz_name)
