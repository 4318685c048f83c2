# backend/app/services/travel/maps_client.py
"""
Google Maps HTTP client: geocoding and traffic-aware route matrix.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
ROUTE_MATRIX_URL = "https://routes.googleapis.com/distanceMatrix/v2:computeRouteMatrix"
ROUTE_FIELD_MASK = "originIndex,destinationIndex,duration,distanceMeters,status,condition"


class MapsError(Exception):
    pass


@dataclass(frozen=True)
class LatLng:
    latitude: float
    longitude: float

    def as_waypoint(self) -> dict:
        return {
            "waypoint": {
                "location": {
                    "latLng": {"latitude": self.latitude, "longitude": self.longitude}
                }
            }
        }


class MapsClient:
    def __init__(self, api_key: str, timeout: float = 8.0):
        self.api_key = api_key
        self.timeout = timeout

    async def geocode(self, address: str) -> LatLng:
        """Resolve an address to coordinates. Raises MapsError when nothing is found."""
        if not self.api_key:
            raise MapsError("Maps API key is not configured")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(GEOCODE_URL, params={"address": address, "key": self.api_key})
        if resp.status_code != 200:
            raise MapsError(f"Geocoding HTTP {resp.status_code} for {address!r}")

        data = resp.json()
        if data.get("status") != "OK" or not data.get("results"):
            raise MapsError(f"Geocoding status {data.get('status')} for {address!r}")

        loc = data["results"][0]["geometry"]["location"]
        return LatLng(latitude=loc["lat"], longitude=loc["lng"])

    async def route_seconds(
        self,
        origin: LatLng,
        destination: LatLng,
        departure_time: datetime | None = None,
    ) -> int:
        """
        Driving duration in seconds between two points.

        Args:
            origin: Start coordinates
            destination: End coordinates
            departure_time: Routing time basis for traffic prediction

        Returns:
            Duration in whole seconds
        """
        if not self.api_key:
            raise MapsError("Maps API key is not configured")

        body = {
            "origins": [origin.as_waypoint()],
            "destinations": [destination.as_waypoint()],
            "travelMode": "DRIVE",
            "routingPreference": "TRAFFIC_AWARE",
        }
        if departure_time is not None:
            # The API rejects departure times in the past
            if departure_time > datetime.now(timezone.utc):
                body["departureTime"] = departure_time.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")

        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key,
            "X-Goog-FieldMask": ROUTE_FIELD_MASK,
        }
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(ROUTE_MATRIX_URL, json=body, headers=headers)
        if resp.status_code != 200:
            raise MapsError(f"Route matrix HTTP {resp.status_code}: {resp.text[:200]}")

        elements = resp.json()
        if not isinstance(elements, list) or not elements:
            raise MapsError("Route matrix returned no elements")

        element = elements[0]
        if element.get("condition") != "ROUTE_EXISTS" or "duration" not in element:
            raise MapsError(f"No route: {element.get('condition')}")

        return int(str(element["duration"]).rstrip("s"))
