"""Parse TripIt-style text exports line by line, without a language model.

The scanner is a fold over lines: step() takes the current cursor and one
line and returns the next cursor plus any activity the line completed.
A new dated line completes the previous activity; flush() completes the
last one at end of input.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import Callable, Optional

from .assembler import assemble
from .errors import ItineraryParseError
from .geocoder import LocationResolver, NominatimGeocoder, RateLimiter
from .models import ParsedLocation, ParseResult, RawActivity, ScheduleItem, TripContext
from .timeparse import (
    MONTHS,
    add_hours,
    detect_timezone,
    minutes_between,
    parse_date,
    parse_time,
)


logger = logging.getLogger(__name__)

DEFAULT_DURATION_HOURS = 2
REST_DAY_START = "09:00"
REST_DAY_END = "20:00"
BUFFER_MINUTES = 30

_MONTH_NAMES = "|".join(sorted(MONTHS, key=len, reverse=True))
_DATE_TOKEN = rf"(?:\w+,?\s+)?\d{{1,2}}\s+(?:{_MONTH_NAMES})\b\.?"

_TIME_TOKEN = r"\d{1,2}:\d{2}(?:\s*[ap]m\b)?"
_GMT_TOKEN = r"GMT\s*[+-]?\d{1,2}(?::\d{2})?"

# "Sun, 21 Dec 16:30 GMT+8 Aeon Mall - grocery shopping"
DATED_ACTIVITY = re.compile(
    rf"^({_DATE_TOKEN})\s+({_TIME_TOKEN})\s*(?:{_GMT_TOKEN})?\s+(.+)$",
    re.IGNORECASE,
)
# "Wed, 24 Dec Rest Day", with or without a time
DATED_REST_DAY = re.compile(
    rf"^({_DATE_TOKEN})\s+(?:{_TIME_TOKEN}\s*(?:{_GMT_TOKEN})?\s+)?((?:rest|free)\s+(?:day|time)\b.*)$",
    re.IGNORECASE,
)
INLINE_UNTIL = re.compile(r"^(.+?)\s+Until\s+(\d{1,2}:\d{2})", re.IGNORECASE)
UNTIL_LINE = re.compile(r"^Until\s+(\d{1,2}:\d{2})", re.IGNORECASE)
ADDRESS_LINE = re.compile(
    r"^(?:\d+.*Malaysia|Lot\s+|Jalan\s+|Level\s+|Block\s+|No\.?\s*\d)",
    re.IGNORECASE,
)
REFERENCE_LINE = re.compile(r"^(?:URL:|\d{3}-)")

_YOUNG_TRAVELERS = re.compile(r"\b(toddler|baby|infant|child|children|kid|kids)\b", re.IGNORECASE)
_RUSH_HOUR = ("17:00", "19:30")


@dataclass(frozen=True)
class CursorState:
    """Everything accumulated for the activity currently being read."""

    date: str = ""
    name: str = ""
    start_time: str = "09:00"
    end_time: str = "11:00"
    address: str = ""
    notes: str = ""
    explicit_end: bool = False
    kind: str = "activity"


def flush(state: CursorState) -> Optional[RawActivity]:
    """Complete the activity held by the cursor, if there is one."""
    if not state.name:
        return None
    return RawActivity(
        date=state.date,
        name=state.name,
        start_time=state.start_time,
        end_time=state.end_time,
        address=state.address or None,
        notes=state.notes or None,
        is_flexible=not state.explicit_end,
        kind=state.kind,
    )


def step(state: CursorState, line: str, reference_year: int) -> tuple[CursorState, Optional[RawActivity]]:
    """Advance the cursor by one input line."""
    line = line.strip()
    if not line:
        return state, None

    match = DATED_REST_DAY.match(line)
    if match:
        new_state = CursorState(
            date=parse_date(match.group(1), reference_year) or "",
            name=match.group(2).strip(),
            start_time=REST_DAY_START,
            end_time=REST_DAY_END,
            kind="rest",
        )
        return new_state, flush(state)

    match = DATED_ACTIVITY.match(line)
    if match:
        start_time = parse_time(match.group(2))
        rest = match.group(3)
        until = INLINE_UNTIL.match(rest)
        if until:
            name, end_time, explicit_end = until.group(1).strip(), parse_time(until.group(2)), True
        else:
            name = rest.strip()
            end_time = add_hours(start_time, DEFAULT_DURATION_HOURS)
            explicit_end = False
        new_state = CursorState(
            date=parse_date(match.group(1), reference_year) or "",
            name=name,
            start_time=start_time,
            end_time=end_time,
            explicit_end=explicit_end,
        )
        return new_state, flush(state)

    match = UNTIL_LINE.match(line)
    if match:
        return replace(state, end_time=parse_time(match.group(1)), explicit_end=True), None

    if ADDRESS_LINE.match(line):
        return replace(state, address=line), None

    if state.name and not REFERENCE_LINE.match(line):
        notes = f"{state.notes} {line}" if state.notes else line
        return replace(state, notes=notes), None

    return state, None


def scan_lines(text: str, reference_year: int) -> list[RawActivity]:
    """Scan the whole text and return the activities in reading order."""
    state = CursorState()
    activities = []
    for line in text.splitlines():
        state, completed = step(state, line, reference_year)
        if completed:
            activities.append(completed)
    last = flush(state)
    if last:
        activities.append(last)
    return activities


class LocalItineraryParser:
    """Parse TripIt-style exports with rules and geocode the places found."""

    def __init__(
        self,
        geocoder: Optional[NominatimGeocoder] = None,
        cache: Optional[dict] = None,
        limiter_factory: Callable[[], RateLimiter] = RateLimiter,
    ):
        self.geocoder = geocoder or NominatimGeocoder()
        self.cache = cache
        self.limiter_factory = limiter_factory

    def parse_text(self, text: str, trip_context: Optional[TripContext] = None) -> ParseResult:
        trip_context = trip_context or TripContext()
        raw_activities = scan_lines(text, trip_context.reference_year)

        # Activities whose date could not be read are dropped by the assembler
        if not any(activity.date for activity in raw_activities):
            raise ItineraryParseError()

        logger.info("[PARSE] Scanned %d activities", len(raw_activities))

        resolver = LocationResolver(
            geocoder=self.geocoder,
            limiter=self.limiter_factory(),
            destination=trip_context.destination,
            cache=self.cache,
        )
        locations = self._resolve_locations(raw_activities, resolver)
        activities = [self._to_schedule_item(activity) for activity in raw_activities]

        warnings = resolver.warnings + self._activity_warnings(raw_activities)
        timezone, gmt_offset = detect_timezone(text)

        result = assemble(
            locations,
            activities,
            warnings=warnings,
            timezone=timezone,
            gmt_offset=gmt_offset,
        )
        result.suggestions.extend(self._suggestions(result, trip_context))
        return result

    def _resolve_locations(self, raw_activities: list[RawActivity], resolver: LocationResolver) -> list[ParsedLocation]:
        """Resolve each distinct place once, in order of first appearance."""
        locations = []
        seen = set()
        for activity in raw_activities:
            key = activity.name.lower()
            if activity.kind == "rest" or key in seen:
                continue
            seen.add(key)

            resolution = resolver.resolve(activity.name, activity.address)
            original_text = activity.name
            if activity.address:
                original_text += f"\n{activity.address}"
            locations.append(ParsedLocation(
                name=activity.name,
                lat=resolution.lat,
                lng=resolution.lng,
                category=resolution.category,
                confidence=resolution.confidence,
                original_text=original_text,
            ))
        return locations

    def _to_schedule_item(self, activity: RawActivity) -> ScheduleItem:
        return ScheduleItem(
            location_name=activity.name,
            date=activity.date,
            start_time=activity.start_time,
            end_time=activity.end_time,
            notes=activity.notes,
            is_flexible=activity.is_flexible,
            original_text=f"{activity.start_time}-{activity.end_time} {activity.name}",
        )

    def _activity_warnings(self, raw_activities: list[RawActivity]) -> list[str]:
        warnings = []
        assumed = 0
        for activity in raw_activities:
            if activity.kind == "rest":
                warnings.append(
                    f"Rest day on {activity.date} - scheduled {activity.start_time}-{activity.end_time} as flexible time"
                )
                continue
            if activity.is_flexible:
                assumed += 1
                if minutes_between(activity.start_time, activity.end_time) < DEFAULT_DURATION_HOURS * 60:
                    warnings.append(
                        f'"{activity.name}" on {activity.date} would run past midnight; '
                        f"end time clipped to {activity.end_time}"
                    )

        if assumed:
            noun = "activity" if assumed == 1 else "activities"
            warnings.append(
                f"Assumed a {DEFAULT_DURATION_HOURS}-hour duration for {assumed} {noun} without an end time"
            )
        return warnings

    def _suggestions(self, result: ParseResult, trip_context: TripContext) -> list[str]:
        suggestions = [f"Parsed {result.activity_count} activities across {len(result.days)} days"]

        if any(location.confidence == "low" for location in result.locations):
            suggestions.append('Review locations with "low" confidence and verify coordinates')

        for day in result.days:
            for current, following in zip(day.activities, day.activities[1:]):
                if minutes_between(current.end_time, following.start_time) < BUFFER_MINUTES:
                    suggestions.append(
                        f'Consider adding buffer time between "{current.location_name}" and '
                        f'"{following.location_name}" on {day.date}'
                    )

        if any(
            _RUSH_HOUR[0] <= activity.start_time <= _RUSH_HOUR[1]
            for day in result.days
            for activity in day.activities
        ):
            suggestions.append(
                f"Allow extra travel time for activities starting in evening traffic ({_RUSH_HOUR[0]}-{_RUSH_HOUR[1]})"
            )

        if trip_context.traveler_info and _YOUNG_TRAVELERS.search(trip_context.traveler_info):
            suggestions.append(
                "Travelling with little ones: keep big outings in the morning and leave room for a midday nap"
            )

        return suggestions
