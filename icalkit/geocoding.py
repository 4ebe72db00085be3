"""Address geocoding for event locations.

Geocoding is best effort: a lookup that fails or finds nothing yields None
and never raises into the calendar parse.
"""

import hashlib
import logging
import time
from typing import Any, Optional, Protocol

import httpx
from pydantic import ValidationError

from icalkit.calendar.models import Coordinates
from icalkit.core.http_client import get_shared_client

logger = logging.getLogger(__name__)

DEFAULT_NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
CACHE_TTL_SECONDS = 86400
MAX_CACHE_SIZE = 1000


class Geocoder(Protocol):
    """Resolves a free-text address to at most one coordinate pair."""

    async def geocode(self, address: str) -> Optional[Coordinates]: ...


class NullGeocoder:
    """Geocoder used when lookups are disabled."""

    async def geocode(self, address: str) -> Optional[Coordinates]:
        return None


def _stable_key(address: str) -> str:
    normalized = " ".join(address.lower().split())
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


class NominatimGeocoder:
    """Geocoder backed by the OpenStreetMap Nominatim search API."""

    def __init__(
        self,
        base_url: str = DEFAULT_NOMINATIM_URL,
        client: Optional[httpx.AsyncClient] = None,
        user_agent: Optional[str] = None,
        cache_ttl: float = CACHE_TTL_SECONDS,
    ):
        """Initialize geocoder.

        Args:
            base_url: Search endpoint
            client: Optional HTTP client (defaults to the shared client)
            user_agent: User-Agent sent with lookups; Nominatim requires one
            cache_ttl: Seconds a cached lookup stays valid
        """
        self.base_url = base_url
        self.client = client
        self.user_agent = user_agent
        self.cache_ttl = cache_ttl
        self._cache: dict[str, tuple[Optional[Coordinates], float]] = {}

    def _cache_get(self, key: str) -> tuple[bool, Optional[Coordinates]]:
        entry = self._cache.get(key)
        if entry is None:
            return False, None
        value, stored_at = entry
        if time.monotonic() - stored_at > self.cache_ttl:
            self._cache.pop(key, None)
            return False, None
        return True, value

    def _cache_set(self, key: str, value: Optional[Coordinates]) -> None:
        if len(self._cache) >= MAX_CACHE_SIZE:
            # drop the oldest half
            oldest = sorted(self._cache.items(), key=lambda item: item[1][1])
            for stale_key, _ in oldest[: len(oldest) // 2]:
                self._cache.pop(stale_key, None)
        self._cache[key] = (value, time.monotonic())

    @staticmethod
    def _first_match(payload: Any) -> Optional[Coordinates]:
        if not isinstance(payload, list) or not payload:
            return None
        best = payload[0]
        if not isinstance(best, dict):
            return None
        try:
            return Coordinates(latitude=float(best["lat"]), longitude=float(best["lon"]))
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            logger.debug("Unusable geocoder result %r: %s", best, e)
            return None

    async def geocode(self, address: str) -> Optional[Coordinates]:
        """Look up ``address``; returns None on no match or on any HTTP failure."""
        address = address.strip()
        if not address:
            return None

        key = _stable_key(address)
        hit, cached = self._cache_get(key)
        if hit:
            return cached

        client = self.client or get_shared_client("geocoder")
        headers = {"User-Agent": self.user_agent} if self.user_agent else None
        try:
            response = await client.get(
                self.base_url,
                params={"q": address, "format": "json", "limit": 1},
                headers=headers,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Geocoding failed for %r: %s", address, e)
            return None

        coordinates = self._first_match(payload)
        if coordinates is None:
            logger.debug("No geocoding match for %r", address)
        self._cache_set(key, coordinates)
        return coordinates
