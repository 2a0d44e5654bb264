"""Data models for parsed itinerary imports."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional


CATEGORIES = (
    "restaurant",
    "attraction",
    "shopping",
    "nature",
    "temple",
    "hotel",
    "transport",
    "medical",
    "playground",
    "flight",
    "logistics",
    "flexible",
)

CONFIDENCE_LEVELS = ("high", "medium", "low")


@dataclass
class TripContext:
    """What the caller knows about the trip being imported into."""

    name: str = "Trip"
    destination: Optional[str] = None
    start_date: Optional[str] = None  # YYYY-MM-DD
    end_date: Optional[str] = None
    traveler_info: Optional[str] = None  # e.g. "2 adults, 1 toddler"

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "TripContext":
        if not data:
            return cls()
        return cls(
            name=data.get("name") or "Trip",
            destination=data.get("destination") or None,
            start_date=data.get("startDate") or None,
            end_date=data.get("endDate") or None,
            traveler_info=data.get("travelerInfo") or None,
        )

    @property
    def reference_year(self) -> int:
        """Year used to resolve dates that omit one."""
        if self.start_date:
            try:
                return datetime.strptime(self.start_date[:10], "%Y-%m-%d").year
            except ValueError:
                pass
        return date.today().year


@dataclass
class RawActivity:
    """An activity as scanned from text, before locations are resolved."""

    date: str
    name: str
    start_time: str
    end_time: str
    address: Optional[str] = None
    notes: Optional[str] = None
    is_flexible: bool = True
    kind: str = "activity"  # activity, rest


@dataclass
class ParsedLocation:
    """A place extracted from the itinerary text."""

    name: str
    lat: float
    lng: float
    category: str = "attraction"
    confidence: str = "low"
    original_text: str = ""
    description: Optional[str] = None
    id: str = ""

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "lat": self.lat,
            "lng": self.lng,
            "category": self.category,
            "confidence": self.confidence,
            "originalText": self.original_text,
        }
        if self.description:
            data["description"] = self.description
        return data


@dataclass
class ScheduleItem:
    """A single scheduled activity on a day."""

    location_name: str
    start_time: str
    end_time: str
    date: str = ""
    notes: Optional[str] = None
    is_flexible: bool = True
    original_text: str = ""
    location_id: str = ""
    id: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "locationId": self.location_id,
            "locationName": self.location_name,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "notes": self.notes,
            "isFlexible": self.is_flexible,
            "originalText": self.original_text,
        }


@dataclass
class ParsedDay:
    """Activities grouped under one calendar date."""

    date: str
    activities: list[ScheduleItem] = field(default_factory=list)
    title: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "title": self.title,
            "activities": [activity.to_dict() for activity in self.activities],
        }


@dataclass
class ParseResult:
    """The structured output of either extraction strategy."""

    locations: list[ParsedLocation] = field(default_factory=list)
    days: list[ParsedDay] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    detected_timezone: Optional[str] = None
    detected_gmt_offset: Optional[str] = None

    @property
    def activity_count(self) -> int:
        return sum(len(day.activities) for day in self.days)

    def location_by_id(self, location_id: str) -> Optional[ParsedLocation]:
        for location in self.locations:
            if location.id == location_id:
                return location
        return None

    def to_dict(self) -> dict:
        return {
            "locations": [location.to_dict() for location in self.locations],
            "days": [day.to_dict() for day in self.days],
            "warnings": self.warnings,
            "suggestions": self.suggestions,
            "detectedTimezone": self.detected_timezone,
            "detectedGmtOffset": self.detected_gmt_offset,
        }
