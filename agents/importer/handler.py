"""API handlers for itinerary import requests."""

import logging
from typing import Any, Dict, Optional, Tuple

from .errors import ExtractionServiceError, ItineraryInputError, ItineraryParseError
from .models import TripContext


logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 50

GENERIC_ERROR = "An error occurred while parsing. Please try again."

TRIP_CONTEXT_FIELDS = ("name", "destination", "startDate", "endDate", "travelerInfo")


def validate_request(data: Any) -> Tuple[str, TripContext]:
    """Check the request body and return (raw_text, trip_context).

    Raises ItineraryInputError before any parsing happens.
    """
    if not isinstance(data, dict):
        raise ItineraryInputError("Please paste your itinerary text")

    raw_text = data.get("rawText")
    if not raw_text or not isinstance(raw_text, str):
        raise ItineraryInputError("Please paste your itinerary text")

    if len(raw_text) < MIN_TEXT_LENGTH:
        raise ItineraryInputError("This doesn't look like a full itinerary. Please paste more text.")

    trip_context = data.get("tripContext")
    if trip_context is not None and not isinstance(trip_context, dict):
        raise ItineraryInputError("Trip context must be an object")

    for field in TRIP_CONTEXT_FIELDS:
        value = (trip_context or {}).get(field)
        if value is not None and not isinstance(value, str):
            raise ItineraryInputError(f"Trip context field '{field}' must be text")

    return raw_text, TripContext.from_dict(trip_context)


def parse_itinerary_handler(data: Dict[str, Any], parser=None) -> Tuple[Dict[str, Any], int]:
    """Parse pasted text with the Claude strategy.

    Args:
        data: Request body with rawText and optional tripContext
        parser: Parser to use instead of a new ClaudeItineraryParser

    Returns:
        (response body, HTTP status)
    """
    def make_parser():
        from .parser import ClaudeItineraryParser
        return ClaudeItineraryParser()

    return _run(data, parser, make_parser)


def parse_itinerary_local_handler(data: Dict[str, Any], parser=None) -> Tuple[Dict[str, Any], int]:
    """Parse pasted text with the rule-based strategy and geocode its places."""
    def make_parser():
        from .local_parser import LocalItineraryParser
        return LocalItineraryParser()

    return _run(data, parser, make_parser)


def _run(data: Dict[str, Any], parser: Optional[Any], make_parser) -> Tuple[Dict[str, Any], int]:
    try:
        raw_text, trip_context = validate_request(data)
        if parser is None:
            parser = make_parser()
        result = parser.parse_text(raw_text, trip_context)
    except (ItineraryInputError, ItineraryParseError) as e:
        return {'success': False, 'error': str(e)}, 400
    except ExtractionServiceError as e:
        return {'success': False, 'error': str(e)}, e.status
    except Exception:
        logger.exception("[PARSE] Unexpected error")
        return {'success': False, 'error': GENERIC_ERROR}, 500

    logger.info(
        "[PARSE] %d locations, %d days, %d warnings",
        len(result.locations), len(result.days), len(result.warnings),
    )
    return {'success': True, 'parsed': result.to_dict()}, 200
