# backend/app/routers/availability.py
"""
Availability API endpoints.

GET /availability/dates     - Dates with at least one offerable slot
GET /availability/slots     - Slots for one date
GET /availability/all-times - Start times across a range, with their dates
"""

from datetime import date, timedelta
from typing import Optional
from fastapi import APIRouter, Depends

from ..config import settings
from ..dependencies import get_slot_allocator
from ..schemas.availability import SlotRead, TimeBucket, TimeBucketDate
from ..services.duration import DurationRequest
from ..services.slots import SlotAllocator


router = APIRouter(prefix="/availability", tags=["availability"])


def duration_request(
    square_footage: Optional[str] = None,
    property_price: Optional[str] = None,
    property_address: Optional[str] = None,
    service_type: Optional[str] = None,
) -> DurationRequest:
    return DurationRequest(
        square_footage=square_footage,
        property_price=property_price,
        address=property_address or None,
        service_type=service_type,
    )


@router.get("/dates", response_model=list[date])
async def get_available_dates(
    start_date: date,
    end_date: date,
    request: DurationRequest = Depends(duration_request),
    allocator: SlotAllocator = Depends(get_slot_allocator),
):
    return await allocator.available_dates(start_date, end_date, request)


@router.get("/slots", response_model=list[SlotRead])
async def get_available_slots(
    date: date,
    request: DurationRequest = Depends(duration_request),
    allocator: SlotAllocator = Depends(get_slot_allocator),
):
    slots = await allocator.list_slots(date, request)
    return [
        SlotRead(
            start_time=s.start_time,
            end_time=s.end_time,
            resource_id=s.resource_id,
            is_primary=s.is_primary,
        )
        for s in slots
    ]


@router.get("/all-times", response_model=list[TimeBucket])
async def get_all_times(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    request: DurationRequest = Depends(duration_request),
    allocator: SlotAllocator = Depends(get_slot_allocator),
):
    """Group every slot in the range by start time (default: next 30 days)."""
    if start_date is None:
        start_date = allocator.calendar.today()
    if end_date is None:
        end_date = start_date + timedelta(days=settings.default_range_days)

    by_date = await allocator.slots_across_dates(start_date, end_date, request)

    buckets: dict[str, list[TimeBucketDate]] = {}
    for day in sorted(by_date):
        for s in by_date[day]:
            buckets.setdefault(s.start_time, []).append(
                TimeBucketDate(
                    date=day,
                    end_time=s.end_time,
                    resource_id=s.resource_id,
                    is_primary=s.is_primary,
                )
            )

    return [TimeBucket(time=t, dates=buckets[t]) for t in sorted(buckets)]
