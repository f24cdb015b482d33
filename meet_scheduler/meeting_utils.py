"""Helpers for Meet links and for displaying meeting details."""

import random
import re
import string
from datetime import date, datetime
from typing import Optional

MEET_BASE_URL = "https://meet.google.com"
MEET_ID_PATTERN = re.compile(r"meet.google.com/([a-z-]+)")
MEET_ID_PREFIX = "abc"


def generate_random_id(length: int = 10) -> str:
    """Random lowercase id that always starts with 'abc'."""
    suffix = "".join(
        random.choice(string.ascii_lowercase)
        for _ in range(max(length - len(MEET_ID_PREFIX), 0))
    )
    return MEET_ID_PREFIX + suffix


def format_date(value: datetime) -> str:
    """Short readable timestamp, e.g. 'Oct 19, 03:45 PM'."""
    return f"{value:%b} {value.day}, {value:%I:%M %p}"


def create_google_meet_link(now: Optional[datetime] = None) -> dict:
    """Synthetic meeting used when no calendar call is made."""
    meet_id = generate_random_id(10)
    return {
        "id": meet_id,
        "link": f"{MEET_BASE_URL}/{meet_id}",
        "created_at": format_date(now or datetime.now()),
    }


def extract_meeting_id(meet_link: str) -> str:
    """Pull the meeting code out of a Meet URL.

    Falls back to the last path segment when the URL is not a Meet link.
    """
    if not meet_link:
        return ""

    match = MEET_ID_PATTERN.search(meet_link)
    if match and match.group(1):
        return match.group(1)

    return meet_link.split("/")[-1]


def format_duration(duration_minutes: int) -> str:
    if duration_minutes < 60:
        return f"{duration_minutes} minutes"
    hours, minutes = divmod(duration_minutes, 60)
    hour_part = f"{hours} hour{'s' if hours > 1 else ''}"
    if minutes:
        return f"{hour_part} {minutes} minute{'s' if minutes > 1 else ''}"
    return hour_part


def format_display_date(date_string: str) -> str:
    """'2025-03-20' -> 'Thursday, March 20, 2025'."""
    value = date.fromisoformat(date_string)
    return f"{value:%A, %B} {value.day}, {value.year}"


def format_display_time(time_string: str) -> str:
    """'14:05' -> '02:05 PM'."""
    hours, minutes = time_string.split(":")[:2]
    return datetime(2000, 1, 1, int(hours), int(minutes)).strftime("%I:%M %p")
