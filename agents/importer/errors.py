"""Exceptions raised by the itinerary import pipeline.

Each carries the short user-facing message the HTTP layer returns.
"""


class ItineraryInputError(ValueError):
    """The request text is missing or too short to be an itinerary."""


class ItineraryParseError(ValueError):
    """Neither activities nor a structured extraction could be produced."""

    def __init__(self, message: str = "Could not parse the itinerary. Please check the format and try again."):
        super().__init__(message)


class ExtractionServiceError(RuntimeError):
    """The reasoning service was unreachable, misconfigured or returned an error."""

    def __init__(self, message: str = "AI service temporarily unavailable. Please try again.", status: int = 502):
        super().__init__(message)
        self.status = status
