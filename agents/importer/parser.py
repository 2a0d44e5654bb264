"""Parse free-form itinerary text with Claude using a forced tool call."""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

import anthropic

from .assembler import assemble
from .categories import normalize_category
from .errors import ExtractionServiceError, ItineraryParseError
from .geocoder import FALLBACK_COORDS
from .models import CATEGORIES, CONFIDENCE_LEVELS, ParsedLocation, ParseResult, ScheduleItem, TripContext
from .timeparse import add_hours, detect_timezone, parse_date, parse_time


logger = logging.getLogger(__name__)

DEFAULT_MODEL = os.environ.get("ITINERARY_MODEL", "claude-sonnet-4-20250514")
PARSE_TOOL_NAME = "parse_itinerary"


SYSTEM_PROMPT_TEMPLATE = """You are a travel itinerary parser. Your task is to extract structured data from
raw text that users paste from various sources (TripIt, ChatGPT, emails, etc.).

TRIP CONTEXT:
- Trip Name: {name}
- Destination: {destination}
- Dates: {start_date} to {end_date}
- Travelers: {travelers}

ACTIVITY TYPES - recognize these five shapes:
1. FLIGHT: "MRU Depart Air Mauritius MK647", "KUL → SIN". Category "flight". startTime is departure,
   endTime is arrival if shown. Keep IATA codes as written, do not expand them to city names.
2. CHECK-IN / CHECK-OUT: hotel or apartment arrival and departure. Category "logistics",
   location is the property itself.
3. REST / FLEXIBLE DAY: "Rest Day", "Free day", "Relax at hotel". Category "flexible",
   schedule 09:00-20:00, isFlexible true, and add the warning
   "Rest day on YYYY-MM-DD - scheduled 09:00-20:00 as flexible time".
4. MULTI-LOCATION ENTRY: "Batu Caves then Chinatown". Split into one activity per place,
   back to back, and add the warning "Split "<original text>" into N activities".
5. REGULAR ACTIVITY: everything else (meals, attractions, shopping, parks, playgrounds).

DURATIONS - when no end time is given:
- flight: use the arrival time, otherwise 3 hours
- check-in / check-out (logistics): 1 hour
- meal (restaurant, cafe, food court): 1.5 hours
- shopping mall: 2 hours
- theme park, zoo, nature reserve: 4 hours
- temple, museum, viewpoint: 1.5 hours
- playground: 1 hour
- anything else: 2 hours
Add the warning "Assumed <N>-hour duration for "<name>"" whenever you infer a duration.

TIME TOKENS:
- "3:00 PM" -> "15:00", "12:00 PM" -> "12:00", "12:30 AM" -> "00:30"
- "15:00 GMT+8" -> "15:00" (strip the timezone)
- "morning" -> "09:00", "afternoon" -> "14:00", "evening" -> "18:00", "night" -> "20:00"
- "Until 19:00" sets the end time of the activity above it
- Always output zero-padded 24-hour "HH:MM". Never let endTime wrap past midnight:
  use "23:59" and add the warning "<name> runs past midnight".

DATES:
- Accept "Dec 21", "21 Dec", "Sun, 21 Dec", "2025-12-21", "December 21".
- If the year is missing, pick the year that places the date inside the trip dates.
- Output "YYYY-MM-DD". If a date is unclear, add a warning naming the text.

COORDINATES AND CONFIDENCE:
- "high": you know the exact venue and its coordinates.
- "medium": you only know the neighbourhood or city, coordinates are approximate.
- "low": you are guessing; use {fallback_lat}, {fallback_lng} and add the warning
  "Could not find coordinates for "<name>" - please verify location".
- Category must be one of: {categories}.

SUGGESTIONS - offer short, practical ones, for example:
- "Consider adding buffer time between "<a>" and "<b>" on <date>"
- "Schedule <activity> in the morning - it is more comfortable for toddlers before nap time"
- "Allow extra travel time for <activity> - evening traffic in the city is heavy"

OUTPUT:
Call the {tool_name} tool exactly once with every location and every day.
Every activity's locationName must exactly match the name of one location, except rest days,
which have no location."""


PARSE_TOOL = {
    "name": PARSE_TOOL_NAME,
    "description": "Return the parsed itinerary data with locations and schedule. Use this tool to output your final parsing results.",
    "input_schema": {
        "type": "object",
        "properties": {
            "locations": {
                "type": "array",
                "description": "All locations extracted from the itinerary",
                "items": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string", "description": "Name of the place"},
                        "lat": {"type": "number", "description": "Latitude coordinate"},
                        "lng": {"type": "number", "description": "Longitude coordinate"},
                        "category": {
                            "type": "string",
                            "enum": list(CATEGORIES),
                            "description": "Category of the location",
                        },
                        "description": {"type": "string", "description": "Brief description of the place"},
                        "confidence": {
                            "type": "string",
                            "enum": list(CONFIDENCE_LEVELS),
                            "description": "high if coordinates verified, medium if city-level, low if uncertain",
                        },
                        "originalText": {"type": "string", "description": "The original text that was parsed"},
                    },
                    "required": ["name", "lat", "lng", "category", "confidence", "originalText"],
                },
            },
            "days": {
                "type": "array",
                "description": "Days with scheduled activities",
                "items": {
                    "type": "object",
                    "properties": {
                        "date": {"type": "string", "description": "Date in YYYY-MM-DD format"},
                        "title": {"type": "string", "description": "Theme for the day (optional)"},
                        "activities": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "locationName": {"type": "string", "description": "Name of the place (must match a location)"},
                                    "startTime": {"type": "string", "description": "Start time in HH:MM format (24-hour)"},
                                    "endTime": {"type": "string", "description": "End time in HH:MM format (24-hour)"},
                                    "notes": {"type": "string", "description": "Notes for this activity"},
                                    "isFlexible": {"type": "boolean", "description": "Whether timing is flexible"},
                                    "originalText": {"type": "string", "description": "The original text that was parsed"},
                                },
                                "required": ["locationName", "startTime", "endTime", "originalText"],
                            },
                        },
                    },
                    "required": ["date", "activities"],
                },
            },
            "warnings": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Any warnings about parsing issues",
            },
            "suggestions": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Suggestions for improving the itinerary",
            },
        },
        "required": ["locations", "days", "warnings", "suggestions"],
    },
}


def build_system_prompt(trip_context: TripContext) -> str:
    """Fill the parser instructions with what we know about the trip."""
    start_date = trip_context.start_date or "Not specified"
    return SYSTEM_PROMPT_TEMPLATE.format(
        name=trip_context.name,
        destination=trip_context.destination or "Not specified",
        start_date=start_date,
        end_date=trip_context.end_date or start_date,
        travelers=trip_context.traveler_info or "Not specified",
        fallback_lat=FALLBACK_COORDS[0],
        fallback_lng=FALLBACK_COORDS[1],
        categories=", ".join(CATEGORIES),
        tool_name=PARSE_TOOL_NAME,
    )


def find_tool_input(content: list, tool_name: str = PARSE_TOOL_NAME) -> Optional[dict]:
    """Return the input of the first matching tool_use block, if any."""
    for block in content or []:
        if getattr(block, "type", None) == "tool_use" and getattr(block, "name", None) == tool_name:
            return block.input
    return None


class ClaudeItineraryParser:
    """Parse itineraries by asking Claude to fill the parse_itinerary tool."""

    def __init__(self, api_key: Optional[str] = None, client=None, model: str = DEFAULT_MODEL):
        self.model = model
        if client is not None:
            self.client = client
            return
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ExtractionServiceError("AI service not configured", status=500)
        self.client = anthropic.Anthropic(api_key=self.api_key)

    def parse_text(self, text: str, trip_context: Optional[TripContext] = None) -> ParseResult:
        trip_context = trip_context or TripContext()

        try:
            message = self.client.messages.create(
                model=self.model,
                max_tokens=8192,
                system=build_system_prompt(trip_context),
                tools=[PARSE_TOOL],
                tool_choice={"type": "tool", "name": PARSE_TOOL_NAME},
                messages=[
                    {
                        "role": "user",
                        "content": (
                            "Please parse this itinerary and extract all locations with coordinates "
                            f"and the daily schedule:\n\n{text}"
                        ),
                    }
                ],
            )
        except anthropic.APIError as e:
            logger.error("[PARSE] Claude API error: %s", e)
            raise ExtractionServiceError() from e

        data = find_tool_input(message.content)
        if data is None:
            logger.warning("[PARSE] Claude did not call %s (stop_reason=%s)", PARSE_TOOL_NAME, getattr(message, "stop_reason", None))
            raise ItineraryParseError()

        return self._build_result(data, text, trip_context)

    def _build_result(self, data: dict, text: str, trip_context: TripContext) -> ParseResult:
        """Validate the tool input and assemble it into a ParseResult."""
        warnings = [str(w) for w in data.get("warnings") or []]
        suggestions = [str(s) for s in data.get("suggestions") or []]

        locations = []
        for loc_data in data.get("locations") or []:
            location = self._build_location(loc_data, warnings)
            if location:
                locations.append(location)

        activities = []
        day_titles = {}
        for day_data in data.get("days") or []:
            day_date = parse_date(str(day_data.get("date") or ""), trip_context.reference_year)
            if not day_date:
                warnings.append(f'Could not read the date "{day_data.get("date")}"')
                continue
            if day_data.get("title") and day_date not in day_titles:
                day_titles[day_date] = day_data["title"]
            for activity_data in day_data.get("activities") or []:
                activities.append(self._build_activity(activity_data, day_date))

        timezone, gmt_offset = detect_timezone(text)
        return assemble(
            locations,
            activities,
            warnings=warnings,
            suggestions=suggestions,
            timezone=timezone,
            gmt_offset=gmt_offset,
            day_titles=day_titles,
        )

    def _build_location(self, loc_data: dict, warnings: list[str]) -> Optional[ParsedLocation]:
        name = str(loc_data.get("name") or "").strip()
        if not name:
            return None

        confidence = loc_data.get("confidence")
        if confidence not in CONFIDENCE_LEVELS:
            confidence = "low"

        # Low confidence always means the fallback point, and only then
        lat, lng = _as_float(loc_data.get("lat")), _as_float(loc_data.get("lng"))
        if lat is None or lng is None or confidence == "low" or (lat, lng) == FALLBACK_COORDS:
            lat, lng = FALLBACK_COORDS
            confidence = "low"
            warnings.append(f'Could not find coordinates for "{name}" - please verify location')

        return ParsedLocation(
            name=name,
            lat=lat,
            lng=lng,
            category=normalize_category(loc_data.get("category"), name),
            confidence=confidence,
            original_text=str(loc_data.get("originalText") or name),
            description=loc_data.get("description") or None,
        )

    def _build_activity(self, activity_data: dict, day_date: str) -> ScheduleItem:
        is_flexible = activity_data.get("isFlexible")
        start_time = parse_time(activity_data.get("startTime"))
        end_raw = activity_data.get("endTime")
        end_time = parse_time(end_raw) if end_raw else add_hours(start_time, 2)
        return ScheduleItem(
            location_name=str(activity_data.get("locationName") or "").strip(),
            date=day_date,
            start_time=start_time,
            end_time=end_time,
            notes=activity_data.get("notes") or None,
            is_flexible=True if is_flexible is None else bool(is_flexible),
            original_text=str(activity_data.get("originalText") or ""),
        )


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
