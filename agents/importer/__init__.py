"""Itinerary Importer - Turn pasted or exported travel text into a geolocated schedule."""

from .models import ParsedDay, ParsedLocation, ParseResult, ScheduleItem, TripContext
from .errors import ExtractionServiceError, ItineraryInputError, ItineraryParseError
from .local_parser import LocalItineraryParser
from .parser import ClaudeItineraryParser
from .geocoder import LocationResolver

__all__ = [
    "ParsedDay",
    "ParsedLocation",
    "ParseResult",
    "ScheduleItem",
    "TripContext",
    "ExtractionServiceError",
    "ItineraryInputError",
    "ItineraryParseError",
    "LocalItineraryParser",
    "ClaudeItineraryParser",
    "LocationResolver",
]
