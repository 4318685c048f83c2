# backend/app/services/duration.py
"""
Appointment duration policy.

total = base (square footage or service type)
      + price surcharge
      + 2 × travel buffer (only when an address is given)
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime

from .travel import TravelEstimator
from .travel.estimator import DEFAULT_ONE_WAY_MINUTES, round_up_to_buffer

logger = logging.getLogger(__name__)

DEFAULT_BASE_MINUTES = 120
SERVICE_TYPE_MINUTES = {
    "standard": 120,
    "extended": 180,
}
UNKNOWN_SERVICE_TYPE_MINUTES = 60

_LEADING_INT = re.compile(r"^\s*(\d+)")


@dataclass(frozen=True)
class DurationQuote:
    base_minutes: int
    price_surcharge_minutes: int = 0
    travel_buffer_minutes: int = 0

    @property
    def appointment_minutes(self) -> int:
        """Time on site, without travel."""
        return self.base_minutes + self.price_surcharge_minutes

    @property
    def total_minutes(self) -> int:
        return self.appointment_minutes + 2 * self.travel_buffer_minutes


@dataclass(frozen=True)
class DurationRequest:
    """Property attributes a listing or booking is quoted for."""
    square_footage: int | str | None = None
    property_price: int | str | None = None
    address: str | None = None
    service_type: str | None = None


def parse_int(value: int | str | None) -> int | None:
    """Leading integer of a value, ignoring thousands separators. None when absent or invalid."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value).replace(",", ""))
    return int(match.group(1)) if match else None


def base_minutes_for_square_footage(square_footage: int | None) -> int:
    if square_footage is None:
        return DEFAULT_BASE_MINUTES
    if square_footage < 3000:
        return 60
    if square_footage < 4000:
        return 90
    return 120


def price_surcharge_minutes(price: int | None) -> int:
    if price is None:
        return 0
    if price >= 5_000_000:
        return 60
    if price >= 1_000_000:
        return 30
    return 0


class DurationPolicy:
    def __init__(self, estimator: TravelEstimator | None = None):
        self.estimator = estimator

    async def quote(
        self,
        square_footage: int | str | None = None,
        property_price: int | str | None = None,
        address: str | None = None,
        booking_time: datetime | None = None,
        service_type: str | None = None,
    ) -> DurationQuote:
        if square_footage not in (None, ""):
            base = base_minutes_for_square_footage(parse_int(square_footage))
        elif service_type:
            base = SERVICE_TYPE_MINUTES.get(service_type, UNKNOWN_SERVICE_TYPE_MINUTES)
        else:
            base = DEFAULT_BASE_MINUTES

        surcharge = price_surcharge_minutes(parse_int(property_price))

        travel = 0
        if address:
            travel = await self._travel_buffer(address, booking_time)

        return DurationQuote(
            base_minutes=base,
            price_surcharge_minutes=surcharge,
            travel_buffer_minutes=travel,
        )

    async def quote_request(self, request: DurationRequest, booking_time: datetime | None = None) -> DurationQuote:
        return await self.quote(
            square_footage=request.square_footage,
            property_price=request.property_price,
            address=request.address,
            booking_time=booking_time,
            service_type=request.service_type,
        )

    async def _travel_buffer(self, address: str, booking_time: datetime | None) -> int:
        if self.estimator is None:
            return round_up_to_buffer(DEFAULT_ONE_WAY_MINUTES)
        try:
            return await self.estimator.buffer_minutes(address, booking_time)
        except Exception as e:
            logger.error(f"Travel buffer failed for {address!r}, using default: {e}")
            return round_up_to_buffer(DEFAULT_ONE_WAY_MINUTES)
