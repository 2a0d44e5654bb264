"""Tests for the location resolver tiers, rate limiter and Nominatim client."""

import pytest
import requests

from agents.importer.geocoder import (
    FALLBACK_COORDS,
    LocationResolver,
    NominatimGeocoder,
    RateLimiter,
    extract_coordinates,
    find_known_location,
    get_country_code,
)

from conftest import FakeGeocoder


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, payload=None, error=None, status_code=200):
        self.payload = payload if payload is not None else []
        self.error = error
        self.status_code = status_code
        self.requests = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        if self.error:
            raise self.error
        return FakeResponse(self.payload, self.status_code)


# Known locations

def test_find_known_location_exact_match_is_case_insensitive():
    assert find_known_location("Batu Caves") == {"lat": 3.2378, "lng": 101.6840, "category": "temple"}


def test_find_known_location_query_contains_key():
    known = find_known_location("Morning at Batu Caves temple")
    assert known["lat"] == 3.2378


def test_find_known_location_key_contains_first_word():
    known = find_known_location("Genting trip")
    assert known["category"] == "attraction"
    assert known["lat"] == 3.4236


def test_find_known_location_first_hit_wins():
    # "klcc" is listed before "aquaria klcc"
    assert find_known_location("Aquarium at KLCC")["lat"] == 3.1578


def test_find_known_location_miss():
    assert find_known_location("Obscure Place") is None
    assert find_known_location("   ") is None


# Embedded coordinates and country codes

def test_extract_coordinates():
    assert extract_coordinates("Jalan Jejaka, Maluri 3.1234, 101.7234") == (3.1234, 101.7234)
    assert extract_coordinates("Lot 5, Jalan Ampang") is None
    assert extract_coordinates(None) is None
    assert extract_coordinates("Version 123.4, 500.2") is None


def test_get_country_code():
    assert get_country_code("Kuala Lumpur, Malaysia") == "my"
    assert get_country_code("Atlantis") == ""
    assert get_country_code(None) == ""


# Rate limiter

def test_rate_limiter_spaces_calls(clock):
    limiter = RateLimiter(interval=1.1, max_calls=5, clock=clock, sleep=clock.sleep)
    for _ in range(3):
        assert limiter.acquire()
    assert clock.sleeps == [pytest.approx(1.1), pytest.approx(1.1)]


def test_rate_limiter_does_not_sleep_when_interval_passed(clock):
    limiter = RateLimiter(interval=1.1, max_calls=5, clock=clock, sleep=clock.sleep)
    limiter.acquire()
    clock.now += 5
    limiter.acquire()
    assert clock.sleeps == []


def test_rate_limiter_caps_total_calls(clock):
    limiter = RateLimiter(interval=1.1, max_calls=2, clock=clock, sleep=clock.sleep)
    assert limiter.acquire()
    assert limiter.acquire()
    assert not limiter.acquire()
    assert limiter.exhausted
    assert limiter.calls == 2


# Resolver tiers

def test_known_location_skips_geocoder(make_limiter):
    geocoder = FakeGeocoder()
    resolver = LocationResolver(geocoder=geocoder, limiter=make_limiter(), cache={})

    resolution = resolver.resolve("Batu Caves")

    assert resolution.confidence == "high"
    assert resolution.source == "known"
    assert resolution.category == "temple"
    assert geocoder.queries == []


def test_address_coordinates_skip_geocoder(make_limiter):
    geocoder = FakeGeocoder()
    resolver = LocationResolver(geocoder=geocoder, limiter=make_limiter(), cache={})

    resolution = resolver.resolve("Obscure Cafe", "Lot 1, 3.2000, 101.5000")

    assert (resolution.lat, resolution.lng) == (3.2, 101.5)
    assert resolution.source == "address"
    assert resolution.category == "restaurant"
    assert geocoder.queries == []


def test_geocoder_hit(make_limiter):
    geocoder = FakeGeocoder({"obscure place": {"lat": 3.5, "lng": 101.9, "approximate": False}})
    resolver = LocationResolver(geocoder=geocoder, limiter=make_limiter(), cache={}, destination="Kuala Lumpur, Malaysia")

    resolution = resolver.resolve("Obscure Place")

    assert (resolution.lat, resolution.lng, resolution.confidence) == (3.5, 101.9, "high")
    assert geocoder.queries == [("Obscure Place, Kuala Lumpur, Malaysia", "my")]
    assert resolver.warnings == []


def test_geocoder_city_level_hit_is_medium(make_limiter):
    geocoder = FakeGeocoder({"obscure town": {"lat": 4.0, "lng": 101.0, "approximate": True}})
    resolver = LocationResolver(geocoder=geocoder, limiter=make_limiter(), cache={})

    assert resolver.resolve("Obscure Town").confidence == "medium"


def test_geocoder_query_uses_address_when_given(make_limiter):
    geocoder = FakeGeocoder()
    resolver = LocationResolver(geocoder=geocoder, limiter=make_limiter(), cache={})

    resolver.resolve("Obscure Place", "Lot 5, Jalan Ampang")

    assert geocoder.queries[0][0] == "Obscure Place, Lot 5, Jalan Ampang"


def test_unresolved_falls_back_with_low_confidence(make_limiter):
    resolver = LocationResolver(geocoder=FakeGeocoder(), limiter=make_limiter(), cache={})

    resolution = resolver.resolve("Obscure Place")

    assert (resolution.lat, resolution.lng) == FALLBACK_COORDS
    assert resolution.confidence == "low"
    assert resolution.source == "fallback"
    assert resolver.warnings == ['Could not find coordinates for "Obscure Place" - please verify location']


def test_low_confidence_iff_fallback_coordinates(make_limiter):
    geocoder = FakeGeocoder({"obscure found": {"lat": 3.5, "lng": 101.9, "approximate": False}})
    resolver = LocationResolver(geocoder=geocoder, limiter=make_limiter(), cache={})

    for name in ["Batu Caves", "Obscure Found", "Obscure Missing"]:
        resolution = resolver.resolve(name)
        is_fallback = (resolution.lat, resolution.lng) == FALLBACK_COORDS
        assert (resolution.confidence == "low") == is_fallback


def test_geocoding_is_capped_per_request(make_limiter, clock):
    geocoder = FakeGeocoder()
    resolver = LocationResolver(geocoder=geocoder, limiter=make_limiter(max_calls=15), cache={})

    resolutions = [resolver.resolve(f"Obscure Place {i}") for i in range(20)]

    assert len(geocoder.queries) == 15
    assert all(resolution.confidence == "low" for resolution in resolutions)
    cap_warnings = [w for w in resolver.warnings if w.startswith("Geocoding limited to first 15")]
    assert len(cap_warnings) == 1
    assert len(clock.sleeps) == 14


def test_cache_is_shared_between_resolvers(make_limiter):
    cache = {}
    geocoder = FakeGeocoder({"obscure place": {"lat": 3.5, "lng": 101.9, "approximate": False}})

    LocationResolver(geocoder=geocoder, limiter=make_limiter(), cache=cache).resolve("Obscure Place")
    second = LocationResolver(geocoder=geocoder, limiter=make_limiter(), cache=cache)
    resolution = second.resolve("Obscure Place")

    assert resolution.lat == 3.5
    assert len(geocoder.queries) == 1
    assert second.limiter.calls == 0


def test_custom_fallback(make_limiter):
    resolver = LocationResolver(geocoder=FakeGeocoder(), limiter=make_limiter(), cache={}, fallback=(1.0, 2.0))
    resolution = resolver.resolve("Obscure Place")
    assert (resolution.lat, resolution.lng, resolution.confidence) == (1.0, 2.0, "low")


# Nominatim client

def test_nominatim_search_request_shape():
    session = FakeSession([{"lat": "3.1", "lon": "101.7", "class": "tourism", "type": "attraction"}])
    geocoder = NominatimGeocoder(session=session, url="https://example.test/search")

    result = geocoder.search("Obscure Place, Malaysia", "my")

    assert result == {"lat": 3.1, "lng": 101.7, "approximate": False}
    sent = session.requests[0]
    assert sent["url"] == "https://example.test/search"
    assert sent["params"]["limit"] == 1
    assert sent["params"]["format"] == "json"
    assert sent["params"]["countrycodes"] == "my"
    assert "User-Agent" in sent["headers"]
    assert sent["timeout"] == 10


def test_nominatim_marks_settlements_approximate():
    session = FakeSession([{"lat": "3.1", "lon": "101.7", "class": "place", "type": "city"}])
    assert NominatimGeocoder(session=session).search("Somewhere")["approximate"] is True


def test_nominatim_empty_result():
    assert NominatimGeocoder(session=FakeSession([])).search("Nowhere") is None


@pytest.mark.parametrize("session", [
    FakeSession(error=requests.ConnectionError("down")),
    FakeSession(error=requests.Timeout("slow")),
    FakeSession(status_code=503),
    FakeSession([{"lat": "north", "lon": "101.7"}]),
    FakeSession({"error": "Unable to geocode"}),
    FakeSession(["not a result"]),
])
def test_nominatim_failures_return_none(session):
    assert NominatimGeocoder(session=session).search("Obscure Place") is None
