"""Shared fakes for the importer tests: no network, no sleeping."""

from types import SimpleNamespace

import pytest

from agents.importer.geocoder import RateLimiter
from agents.importer.local_parser import LocalItineraryParser


class FakeClock:
    """Monotonic clock that only moves when sleep() is called."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeGeocoder:
    """Stands in for NominatimGeocoder; answers from a dict of name -> result."""

    def __init__(self, results=None):
        self.results = results or {}
        self.queries = []

    def search(self, query, country_code=""):
        self.queries.append((query, country_code))
        name = query.split(",")[0].strip().lower()
        return self.results.get(name)


class FakeMessages:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return self.response


class FakeAnthropic:
    """Minimal Anthropic client exposing messages.create()."""

    def __init__(self, response=None, error=None):
        self.messages = FakeMessages(response, error)


def tool_response(tool_input, name="parse_itinerary"):
    return SimpleNamespace(
        content=[
            SimpleNamespace(type="text", text="Here is the parsed itinerary."),
            SimpleNamespace(type="tool_use", id="toolu_1", name=name, input=tool_input),
        ],
        stop_reason="tool_use",
    )


def text_response(text):
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)], stop_reason="end_turn")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_limiter(clock):
    def factory(max_calls=15):
        return RateLimiter(max_calls=max_calls, clock=clock, sleep=clock.sleep)
    return factory


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def local_parser(geocoder, make_limiter):
    return LocalItineraryParser(geocoder=geocoder, cache={}, limiter_factory=make_limiter)
