# backend/app/services/travel/estimator.py
"""
One-way travel estimates and the 30-minute travel buffers derived from them.

Lookups are cached per (origin, destination, arrival hour). Any failure falls
back to a fixed default that is cached under the same key, so a broken
provider is not hit again until the entry expires.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from math import ceil
from typing import Iterable, Literal

import httpx

from ...config import GeocodeFallback
from .cache import TravelCache
from .maps_client import LatLng, MapsClient, MapsError

logger = logging.getLogger(__name__)

DEFAULT_ONE_WAY_MINUTES = 30  # ~25 miles
BUFFER_STEP_MINUTES = 30

Direction = Literal["to", "from"]


def normalize_address(address: str) -> str:
    return " ".join(address.split()).upper()


def round_up_to_buffer(minutes: int) -> int:
    """Round one-way minutes up to a 30-minute multiple, never below 30."""
    return max(BUFFER_STEP_MINUTES, ceil(minutes / BUFFER_STEP_MINUTES) * BUFFER_STEP_MINUTES)


class GeocodeFallbacks:
    """
    Coordinates to use when the geocoder fails.

    Configured entries match by case-insensitive substring. Every successful
    geocode is also remembered as last-known-good for the exact address.
    """

    def __init__(self, entries: Iterable[GeocodeFallback] = ()):
        self._entries = [(e.match.upper(), LatLng(e.latitude, e.longitude)) for e in entries]
        self._last_known_good: dict[str, LatLng] = {}

    def remember(self, address: str, coords: LatLng) -> None:
        self._last_known_good[normalize_address(address)] = coords

    def lookup(self, address: str) -> LatLng | None:
        key = normalize_address(address)
        if key in self._last_known_good:
            return self._last_known_good[key]
        for match, coords in self._entries:
            if match in key:
                return coords
        return None


@dataclass(frozen=True)
class TravelWindow:
    start: datetime
    end: datetime
    minutes: int


class TravelEstimator:
    def __init__(
        self,
        maps_client: MapsClient,
        cache: TravelCache,
        office: LatLng,
        fallbacks: GeocodeFallbacks | None = None,
        timeout: float = 8.0,
    ):
        self.maps_client = maps_client
        self.cache = cache
        self.office = office
        self.fallbacks = fallbacks or GeocodeFallbacks()
        self.timeout = timeout
        self._geocode_cache: dict[str, LatLng] = {}

    # ── Public API ───────────────────────────────────────────────────────

    async def estimate_one_way_minutes(
        self,
        address: str,
        arrival_time: datetime | None = None,
        origin: str | None = None,
    ) -> int:
        """
        Driving minutes from `origin` (the office when omitted) to `address`.

        Never raises for provider problems: the default estimate is returned
        and cached instead.
        """
        key = self._cache_key(address, arrival_time, origin)
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        try:
            minutes = await self._lookup_minutes(address, arrival_time, origin)
        except (MapsError, httpx.HTTPError, asyncio.TimeoutError, KeyError, ValueError) as e:
            logger.warning(
                f"Travel lookup failed for {address!r}, using default "
                f"{DEFAULT_ONE_WAY_MINUTES} min: {e!r}"
            )
            minutes = DEFAULT_ONE_WAY_MINUTES

        await self.cache.set(key, minutes)
        return minutes

    async def buffer_minutes(
        self,
        address: str,
        arrival_time: datetime | None = None,
        origin: str | None = None,
    ) -> int:
        minutes = await self.estimate_one_way_minutes(address, arrival_time, origin)
        return round_up_to_buffer(minutes)

    async def travel_event_window(
        self,
        address: str,
        appointment_time: datetime,
        direction: Direction,
    ) -> TravelWindow:
        """
        Travel block around an appointment.

        "to" ends at the appointment start, "from" starts at the appointment end.
        """
        minutes = await self.buffer_minutes(address, appointment_time)
        if direction == "to":
            return TravelWindow(appointment_time - timedelta(minutes=minutes), appointment_time, minutes)
        return TravelWindow(appointment_time, appointment_time + timedelta(minutes=minutes), minutes)

    # ── Helpers ──────────────────────────────────────────────────────────

    def _cache_key(self, address: str, arrival_time: datetime | None, origin: str | None) -> str:
        origin_key = normalize_address(origin) if origin else "OFFICE"
        if arrival_time is None:
            hour_key = "ANY"
        else:
            hour_key = arrival_time.replace(minute=0, second=0, microsecond=0).isoformat()
        return f"{origin_key}|{normalize_address(address)}|{hour_key}"

    async def _lookup_minutes(
        self,
        address: str,
        arrival_time: datetime | None,
        origin: str | None,
    ) -> int:
        destination = await self._geocode(address)
        start = await self._geocode(origin) if origin else self.office
        seconds = await asyncio.wait_for(
            self.maps_client.route_seconds(start, destination, arrival_time),
            timeout=self.timeout,
        )
        return ceil(seconds / 60)

    async def _geocode(self, address: str) -> LatLng:
        key = normalize_address(address)
        if key in self._geocode_cache:
            return self._geocode_cache[key]

        try:
            coords = await asyncio.wait_for(self.maps_client.geocode(address), timeout=self.timeout)
        except (MapsError, httpx.HTTPError, asyncio.TimeoutError, KeyError, ValueError) as e:
            coords = self.fallbacks.lookup(address)
            if coords is None:
                raise
            logger.warning(f"Geocoding failed for {address!r} ({e!r}), using fallback coordinates")
        else:
            self.fallbacks.remember(address, coords)

        self._geocode_cache[key] = coords
        return coords
