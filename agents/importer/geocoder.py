"""Resolve place names to coordinates using known places and OpenStreetMap/Nominatim."""

from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from .categories import infer_category


logger = logging.getLogger(__name__)

NOMINATIM_URL = os.environ.get("NOMINATIM_URL", "https://nominatim.openstreetmap.org/search")
USER_AGENT = os.environ.get("GEOCODER_USER_AGENT", "TripPlanner-Importer/1.0")

# Nominatim requires a delay between requests (1 request per second)
NOMINATIM_DELAY = 1.1

# Maximum number of external lookups per request (to bound latency)
MAX_GEOCODE_LOCATIONS = 15

# Kuala Lumpur city centre, used when a place cannot be found
FALLBACK_COORDS = (3.1390, 101.6869)
DEFAULT_COUNTRY = "Malaysia"

# Nominatim result classes/types that only pin down a town or region
_APPROXIMATE_CLASSES = {"boundary"}
_APPROXIMATE_TYPES = {"city", "town", "village", "suburb", "state", "county", "region", "country", "administrative"}

# Order matters: the first substring hit wins.
KNOWN_LOCATIONS: dict[str, dict] = {
    # Kuala Lumpur
    "klcc": {"lat": 3.1578, "lng": 101.7117, "category": "attraction"},
    "klcc park": {"lat": 3.1555, "lng": 101.7115, "category": "nature"},
    "petronas": {"lat": 3.1578, "lng": 101.7117, "category": "attraction"},
    "petronas twin tower": {"lat": 3.1578, "lng": 101.7117, "category": "attraction"},
    "petronas towers": {"lat": 3.1578, "lng": 101.7117, "category": "attraction"},
    "suria klcc": {"lat": 3.1580, "lng": 101.7132, "category": "shopping"},
    "pavilion": {"lat": 3.1490, "lng": 101.7133, "category": "shopping"},
    "pavilion kl": {"lat": 3.1490, "lng": 101.7133, "category": "shopping"},
    "berjaya times square": {"lat": 3.1421, "lng": 101.7108, "category": "shopping"},
    "bukit bintang": {"lat": 3.1466, "lng": 101.7108, "category": "shopping"},
    "jalan alor": {"lat": 3.1456, "lng": 101.7089, "category": "restaurant"},
    "petaling street": {"lat": 3.1456, "lng": 101.6958, "category": "shopping"},
    "chinatown": {"lat": 3.1456, "lng": 101.6958, "category": "shopping"},
    "plaza low yat": {"lat": 3.1454, "lng": 101.7108, "category": "shopping"},
    "sungai wang": {"lat": 3.1477, "lng": 101.7108, "category": "shopping"},
    "aquaria klcc": {"lat": 3.1530, "lng": 101.7118, "category": "attraction"},
    "kl sentral": {"lat": 3.1343, "lng": 101.6864, "category": "transport"},
    "sunway velocity": {"lat": 3.1282, "lng": 101.7215, "category": "shopping"},
    # Batu Caves
    "batu caves": {"lat": 3.2378, "lng": 101.6840, "category": "temple"},
    "batu cave": {"lat": 3.2378, "lng": 101.6840, "category": "temple"},
    # Genting
    "genting highlands": {"lat": 3.4236, "lng": 101.7932, "category": "attraction"},
    "genting highland": {"lat": 3.4236, "lng": 101.7932, "category": "attraction"},
    "skyavenue": {"lat": 3.4236, "lng": 101.7932, "category": "shopping"},
    # Cameron Highlands
    "cameron highlands": {"lat": 4.4718, "lng": 101.3767, "category": "nature"},
    "cameron highland": {"lat": 4.4718, "lng": 101.3767, "category": "nature"},
    "tanah rata": {"lat": 4.4718, "lng": 101.3767, "category": "nature"},
    "brinchang": {"lat": 4.4925, "lng": 101.3867, "category": "nature"},
    # Putrajaya
    "putrajaya": {"lat": 2.9264, "lng": 101.6964, "category": "attraction"},
    # Sunway
    "sunway pyramid": {"lat": 3.0733, "lng": 101.6078, "category": "shopping"},
    "sunway lagoon": {"lat": 3.0733, "lng": 101.6050, "category": "attraction"},
    # Cheras
    "m vertica": {"lat": 3.1073, "lng": 101.7271, "category": "hotel"},
    "aeon mall maluri": {"lat": 3.1234, "lng": 101.7234, "category": "shopping"},
    "aeon mall": {"lat": 3.1234, "lng": 101.7234, "category": "shopping"},
    # Zoo
    "zoo negara": {"lat": 3.2099, "lng": 101.7583, "category": "attraction"},
    # Airports
    "klia": {"lat": 2.7456, "lng": 101.7072, "category": "transport"},
    "klia2": {"lat": 2.7456, "lng": 101.7072, "category": "transport"},
    "kuala lumpur international airport": {"lat": 2.7456, "lng": 101.7072, "category": "transport"},
}

COUNTRY_CODES = {
    "Malaysia": "my",
    "Singapore": "sg",
    "Thailand": "th",
    "Indonesia": "id",
    "Italy": "it",
    "France": "fr",
    "Spain": "es",
    "India": "in",
    "Japan": "jp",
    "United Kingdom": "gb",
    "Germany": "de",
    "USA": "us",
    "United States": "us",
    "Austria": "at",
    "Switzerland": "ch",
    "Netherlands": "nl",
    "Greece": "gr",
    "Portugal": "pt",
    "Mauritius": "mu",
}

_COORDS_IN_TEXT = re.compile(r"(-?[0-9]+\.[0-9]+),\s*(-?[0-9]+\.[0-9]+)")

# Process-local cache of successful lookups, keyed by lowercase query
_geocode_cache: dict[str, dict] = {}


@dataclass
class Resolution:
    """Where a place is, and how much to trust it."""

    lat: float
    lng: float
    category: str
    confidence: str
    source: str  # known, address, geocoder, fallback


def find_known_location(name: str) -> Optional[dict]:
    """Look a name up in KNOWN_LOCATIONS, exact match first then substring."""
    name_lower = name.lower().strip()
    if not name_lower:
        return None

    if name_lower in KNOWN_LOCATIONS:
        return KNOWN_LOCATIONS[name_lower]

    first_word = name_lower.split()[0]
    for key, value in KNOWN_LOCATIONS.items():
        if key in name_lower or first_word in key:
            return value

    return None


def extract_coordinates(address: Optional[str]) -> Optional[tuple[float, float]]:
    """Pull a "lat, lng" pair out of an address line, if it has one."""
    if not address:
        return None
    match = _COORDS_IN_TEXT.search(address)
    if not match:
        return None
    lat, lng = float(match.group(1)), float(match.group(2))
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return lat, lng


def get_country_code(region: Optional[str]) -> str:
    """Convert a destination like "Kuala Lumpur, Malaysia" to an ISO country code."""
    if not region:
        return ""
    for country, code in COUNTRY_CODES.items():
        if country.lower() in region.lower():
            return code
    return ""


class RateLimiter:
    """Spaces out calls to at most one per interval and caps the total.

    acquire() blocks until the next call is allowed and returns False once
    max_calls have been handed out.
    """

    def __init__(
        self,
        interval: float = NOMINATIM_DELAY,
        max_calls: int = MAX_GEOCODE_LOCATIONS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.interval = interval
        self.max_calls = max_calls
        self._clock = clock
        self._sleep = sleep
        self._last_call: Optional[float] = None
        self.calls = 0

    @property
    def exhausted(self) -> bool:
        return self.calls >= self.max_calls

    def acquire(self) -> bool:
        if self.exhausted:
            return False
        if self._last_call is not None:
            elapsed = self._clock() - self._last_call
            if elapsed < self.interval:
                self._sleep(self.interval - elapsed)
        self._last_call = self._clock()
        self.calls += 1
        return True


class NominatimGeocoder:
    """Single-result free-text search against Nominatim."""

    def __init__(self, session=None, url: str = NOMINATIM_URL, timeout: float = 10):
        self.session = session or requests.Session()
        self.url = url
        self.timeout = timeout

    def search(self, query: str, country_code: str = "") -> Optional[dict]:
        """Return {"lat", "lng", "approximate"} for the best match, or None."""
        params = {
            "q": query,
            "format": "json",
            "limit": 1,
        }
        if country_code:
            params["countrycodes"] = country_code

        headers = {"User-Agent": USER_AGENT}

        try:
            response = self.session.get(self.url, params=params, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.Timeout:
            logger.warning("[GEOCODING] Timed out for: %s", query)
            return None
        except (requests.RequestException, ValueError) as e:
            logger.warning("[GEOCODING] Failed for %s: %s", query, e)
            return None

        if not isinstance(data, list) or not data:
            return None

        result = data[0]
        try:
            lat, lng = float(result["lat"]), float(result["lon"])
        except (KeyError, TypeError, ValueError):
            logger.warning("[GEOCODING] Unusable result for %s: %r", query, result)
            return None

        approximate = (
            result.get("class") in _APPROXIMATE_CLASSES
            or result.get("type") in _APPROXIMATE_TYPES
            or result.get("addresstype") in _APPROXIMATE_TYPES
        )
        return {"lat": lat, "lng": lng, "approximate": approximate}


class LocationResolver:
    """Resolve place names through known places, embedded coordinates,
    Nominatim and finally a fixed fallback point.

    One resolver serves one request: its rate limiter and warnings are
    per-request, while the lookup cache may be shared across requests.
    """

    def __init__(
        self,
        geocoder: Optional[NominatimGeocoder] = None,
        limiter: Optional[RateLimiter] = None,
        destination: Optional[str] = None,
        fallback: tuple[float, float] = FALLBACK_COORDS,
        cache: Optional[dict] = None,
    ):
        self.geocoder = geocoder or NominatimGeocoder()
        self.limiter = limiter or RateLimiter()
        self.destination = destination or DEFAULT_COUNTRY
        self.country_code = get_country_code(self.destination)
        self.fallback = fallback
        self.cache = _geocode_cache if cache is None else cache
        self.warnings: list[str] = []
        self._cap_warned = False

    def resolve(self, name: str, address: Optional[str] = None) -> Resolution:
        known = find_known_location(name)
        if known:
            return Resolution(known["lat"], known["lng"], known["category"], "high", "known")

        category = infer_category(name)

        coords = extract_coordinates(address)
        if coords:
            return Resolution(coords[0], coords[1], category, "high", "address")

        result = self._geocode(name, address)
        if result:
            confidence = "medium" if result["approximate"] else "high"
            return Resolution(result["lat"], result["lng"], category, confidence, "geocoder")

        return self._fallback(name, category)

    def _geocode(self, name: str, address: Optional[str]) -> Optional[dict]:
        query = f"{name}, {address}" if address else f"{name}, {self.destination}"
        cache_key = query.lower()

        cached = self.cache.get(cache_key)
        if cached:
            return cached

        if not self.limiter.acquire():
            if not self._cap_warned:
                self._cap_warned = True
                self.warnings.append(
                    f"Geocoding limited to first {self.limiter.max_calls} unique locations. "
                    "Some locations may need manual verification."
                )
            self.warnings.append(f'Skipped geocoding for "{name}" - please verify location')
            return None

        result = self.geocoder.search(query, self.country_code)
        if result:
            self.cache[cache_key] = result
            logger.info("[GEOCODING] %s -> (%s, %s)", name, result["lat"], result["lng"])
        else:
            self.warnings.append(f'Could not find coordinates for "{name}" - please verify location')
        return result

    def _fallback(self, name: str, category: str) -> Resolution:
        lat, lng = self.fallback
        return Resolution(lat, lng, category, "low", "fallback")
