# backend/app/services/travel/__init__.py
"""
Travel time estimation.

Geocoding + route matrix through Google Maps, with an explicit cache object
owned by each estimator.
"""

from .cache import MemoryTravelCache, RedisTravelCache, TravelCache
from .estimator import (
    DEFAULT_ONE_WAY_MINUTES,
    GeocodeFallbacks,
    TravelEstimator,
    TravelWindow,
    round_up_to_buffer,
)
from .maps_client import LatLng, MapsClient, MapsError

__all__ = [
    "TravelCache",
    "MemoryTravelCache",
    "RedisTravelCache",
    "DEFAULT_ONE_WAY_MINUTES",
    "GeocodeFallbacks",
    "TravelEstimator",
    "TravelWindow",
    "round_up_to_buffer",
    "LatLng",
    "MapsClient",
    "MapsError",
]
