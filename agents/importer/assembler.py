"""Turn extracted locations and activities into a finished ParseResult."""

from __future__ import annotations

import uuid
from typing import Iterable, Optional

from .models import ParsedDay, ParsedLocation, ParseResult, ScheduleItem


LATEST_END_TIME = "23:59"


def new_id() -> str:
    return str(uuid.uuid4())


def dedupe_locations(locations: Iterable[ParsedLocation]) -> list[ParsedLocation]:
    """Drop repeated names (case-insensitive), keeping the first occurrence."""
    seen = set()
    unique = []
    for location in locations:
        key = location.name.strip().lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(location)
    return unique


def timezone_note(timezone: Optional[str], gmt_offset: Optional[str]) -> Optional[str]:
    if not gmt_offset:
        return None
    if timezone:
        return f"Detected timezone: {gmt_offset} ({timezone})"
    return f"Detected timezone: {gmt_offset}"


def assemble(
    locations: Iterable[ParsedLocation],
    activities: Iterable[ScheduleItem],
    warnings: Optional[list[str]] = None,
    suggestions: Optional[list[str]] = None,
    timezone: Optional[str] = None,
    gmt_offset: Optional[str] = None,
    day_titles: Optional[dict[str, str]] = None,
) -> ParseResult:
    """Assign ids, link activities to locations and group them into sorted days.

    Activities are linked to locations by case-insensitive name; an activity
    whose name matches no location keeps an empty location_id.
    """
    warnings = list(warnings or [])
    suggestions = list(suggestions or [])
    day_titles = day_titles or {}

    unique_locations = dedupe_locations(locations)
    for location in unique_locations:
        if not location.id:
            location.id = new_id()
    name_to_id = {location.name.strip().lower(): location.id for location in unique_locations}

    days_by_date: dict[str, ParsedDay] = {}
    for activity in activities:
        if not activity.date:
            warnings.append(f'Skipped "{activity.location_name}" - no date could be determined')
            continue

        if not activity.id:
            activity.id = new_id()
        if not activity.location_id:
            activity.location_id = name_to_id.get(activity.location_name.strip().lower(), "")

        if activity.end_time < activity.start_time:
            warnings.append(
                f'"{activity.location_name}" on {activity.date} runs past midnight '
                f"({activity.start_time}-{activity.end_time}); end time set to {LATEST_END_TIME}"
            )
            activity.end_time = LATEST_END_TIME

        day = days_by_date.get(activity.date)
        if day is None:
            day = ParsedDay(date=activity.date, title=day_titles.get(activity.date) or None)
            days_by_date[activity.date] = day
        day.activities.append(activity)

    days = [days_by_date[day_date] for day_date in sorted(days_by_date)]
    for day in days:
        # Canonical HH:MM sorts correctly as a string
        day.activities.sort(key=lambda item: item.start_time)

    note = timezone_note(timezone, gmt_offset)
    if note:
        suggestions.insert(0, note)

    return ParseResult(
        locations=unique_locations,
        days=days,
        warnings=warnings,
        suggestions=suggestions,
        detected_timezone=timezone,
        detected_gmt_offset=gmt_offset,
    )
