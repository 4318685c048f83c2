# backend/app/routers/calendar.py
"""
Raw staff calendar view (busy intervals per resource).
"""

from datetime import datetime, timedelta

from fastapi import APIRouter, Depends

from ..config import settings
from ..dependencies import get_busy_source
from ..errors import InvalidRequest, NoResourcesConfigured
from ..schemas.calendar import BusyIntervalRead, ResourceBusy
from ..services.calendar import BusyIntervalSource
from ..services.slots import AllocatorConfig, get_allocator_config

router = APIRouter(prefix="/calendar", tags=["calendar"])


def _aware(value: datetime) -> datetime:
    """Naive query datetimes are business-local."""
    return value if value.tzinfo else value.replace(tzinfo=settings.tz)


@router.get("/busy", response_model=list[ResourceBusy])
async def get_busy(
    start: datetime,
    end: datetime,
    busy_source: BusyIntervalSource = Depends(get_busy_source),
    config: AllocatorConfig = Depends(get_allocator_config),
):
    start, end = _aware(start), _aware(end)
    if end <= start:
        raise InvalidRequest("end must be after start")
    if end - start > timedelta(days=settings.max_range_days):
        raise InvalidRequest(f"Range is limited to {settings.max_range_days} days")
    if not config.resource_ids:
        raise NoResourcesConfigured()

    busy = await busy_source.busy_intervals(config.ordered_resources, start, end)
    return [
        ResourceBusy(
            resource_id=resource_id,
            available=intervals is not None,
            intervals=[BusyIntervalRead.model_validate(i) for i in intervals or []],
        )
        for resource_id, intervals in busy.items()
    ]
