"""Normalize time, date and timezone tokens found in itinerary text."""

from __future__ import annotations

import re
from datetime import date
from typing import Optional


DEFAULT_TIME = "09:00"

# Named parts of the day and the clock time they stand for
PERIOD_TIMES = {
    "morning": "09:00",
    "afternoon": "14:00",
    "evening": "18:00",
    "night": "20:00",
    "noon": "12:00",
    "midnight": "00:00",
}

MONTHS = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

# Months before June are assumed to belong to the year after the trip starts.
# This only holds for itineraries that cross a December/January boundary.
ROLLOVER_BEFORE_MONTH = 6

GMT_TIMEZONES = {
    "GMT+8": "Asia/Kuala_Lumpur",
    "GMT+7": "Asia/Bangkok",
    "GMT+9": "Asia/Tokyo",
    "GMT+0": "Europe/London",
    "GMT-5": "America/New_York",
    "GMT-8": "America/Los_Angeles",
}

_TIME_24 = re.compile(r"^(\d{1,2}):(\d{2})$")
_TIME_12 = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*([ap])\.?m\.?$", re.IGNORECASE)
_GMT_SUFFIX = re.compile(r"\s*GMT\s*[+-]?\d{1,2}(?::\d{2})?$", re.IGNORECASE)
_PERIOD = re.compile(r"\b(" + "|".join(PERIOD_TIMES) + r")\b", re.IGNORECASE)
_GMT_MARKER = re.compile(r"GMT([+-]\d{1,2}(?::\d{2})?)", re.IGNORECASE)

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_DAY_MONTH = re.compile(r"(\d{1,2})(?:st|nd|rd|th)?\s+([A-Za-z]+)\.?(?:,?\s+(\d{4}))?")
_MONTH_DAY = re.compile(r"([A-Za-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?\b(?:,?\s+(\d{4}))?")


def format_time(hours: int, minutes: int) -> str:
    return f"{hours:02d}:{minutes:02d}"


def parse_time(raw: Optional[str]) -> str:
    """Convert a time token to canonical 24-hour HH:MM.

    Tries strict 24-hour, then 12-hour AM/PM, then named periods such as
    "morning". Anything unrecognized becomes 09:00.
    """
    if not raw:
        return DEFAULT_TIME

    text = _GMT_SUFFIX.sub("", raw.strip())

    match = _TIME_24.match(text)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours <= 23 and minutes <= 59:
            return format_time(hours, minutes)

    match = _TIME_12.match(text)
    if match:
        hours = int(match.group(1))
        minutes = int(match.group(2) or 0)
        if 1 <= hours <= 12 and minutes <= 59:
            is_pm = match.group(3).lower() == "p"
            if is_pm and hours != 12:
                hours += 12
            if not is_pm and hours == 12:
                hours = 0
            return format_time(hours, minutes)

    match = _PERIOD.search(text)
    if match:
        return PERIOD_TIMES[match.group(1).lower()]

    return DEFAULT_TIME


def is_canonical_time(value: Optional[str]) -> bool:
    return bool(value) and len(value) == 5 and parse_time(value) == value


def add_hours(hhmm: str, hours: int) -> str:
    """Add whole hours to HH:MM, clamping the hour at 23 (no day rollover)."""
    hour_str, minute_str = hhmm.split(":")
    new_hour = min(23, int(hour_str) + hours)
    return format_time(new_hour, int(minute_str))


def minutes_between(start: str, end: str) -> int:
    start_h, start_m = (int(part) for part in start.split(":"))
    end_h, end_m = (int(part) for part in end.split(":"))
    return (end_h * 60 + end_m) - (start_h * 60 + start_m)


def month_number(name: str) -> Optional[int]:
    return MONTHS.get(name.lower().rstrip("."))


def resolve_year(month: int, reference_year: int) -> int:
    if month < ROLLOVER_BEFORE_MONTH:
        return reference_year + 1
    return reference_year


def parse_date(raw: Optional[str], reference_year: int) -> Optional[str]:
    """Convert a date token like "Sun, 21 Dec" to YYYY-MM-DD.

    An explicit year in the token is used as-is; otherwise the year comes
    from resolve_year(). Returns None when no date can be read.
    """
    if not raw:
        return None
    text = raw.strip()

    match = _ISO_DATE.match(text)
    if match:
        return _build_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    for pattern, day_group, month_group in ((_DAY_MONTH, 1, 2), (_MONTH_DAY, 2, 1)):
        for match in pattern.finditer(text):
            month = month_number(match.group(month_group))
            if not month:
                continue
            day = int(match.group(day_group))
            year = int(match.group(3)) if match.group(3) else resolve_year(month, reference_year)
            return _build_date(year, month, day)

    return None


def _build_date(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def detect_timezone(text: str) -> tuple[Optional[str], Optional[str]]:
    """Find the first GMT offset marker in text.

    Returns (timezone_name, gmt_offset). The name is None when the offset is
    not in GMT_TIMEZONES; both are None when no marker is present.
    """
    match = _GMT_MARKER.search(text or "")
    if not match:
        return None, None
    gmt_offset = f"GMT{match.group(1)}"
    return GMT_TIMEZONES.get(gmt_offset), gmt_offset
