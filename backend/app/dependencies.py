# backend/app/dependencies.py
"""
FastAPI dependency providers.

Process-wide collaborators (calendar client, travel estimator, locks) are
built once; per-request ones are assembled around the request's DB session.
Tests replace any of them through `app.dependency_overrides`.
"""

import logging
from datetime import datetime
from functools import lru_cache
from typing import Callable

from fastapi import Depends
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .redis_client import async_redis_client
from .services.booking_committer import BookingCommitter, ResourceLocks
from .services.calendar import BusyIntervalSource, CalendarClient, FakeCalendarClient
from .services.duration import DurationPolicy
from .services.events import EventEmitter, emit_event
from .services.operating_calendar import OperatingCalendar
from .services.slots import AllocatorConfig, SlotAllocator, get_allocator_config
from .services.travel import (
    GeocodeFallbacks,
    LatLng,
    MapsClient,
    MemoryTravelCache,
    RedisTravelCache,
    TravelCache,
    TravelEstimator,
)

logger = logging.getLogger(__name__)


# ── Process-wide ─────────────────────────────────────────────────────────


@lru_cache
def get_calendar_client() -> CalendarClient:
    """Google Calendar when a service account is configured, in-memory otherwise."""
    if settings.google_service_account_file:
        from .services.calendar.google import GoogleCalendarClient

        logger.info("Using Google Calendar for staff availability")
        return GoogleCalendarClient(
            settings.google_service_account_file,
            tz=settings.tz,
            timeout=settings.calendar_timeout,
        )
    logger.warning("GOOGLE_SERVICE_ACCOUNT_FILE not set, using in-memory calendar")
    return FakeCalendarClient()


def _travel_cache() -> TravelCache:
    if settings.travel_cache_backend == "redis":
        return RedisTravelCache(async_redis_client, ttl_seconds=settings.travel_cache_ttl_seconds)
    return MemoryTravelCache(ttl_seconds=settings.travel_cache_ttl_seconds)


@lru_cache
def get_travel_estimator() -> TravelEstimator:
    return TravelEstimator(
        maps_client=MapsClient(settings.routes_api_key, timeout=settings.maps_timeout),
        cache=_travel_cache(),
        office=LatLng(settings.office_latitude, settings.office_longitude),
        fallbacks=GeocodeFallbacks(settings.geocode_fallbacks),
        timeout=settings.maps_timeout,
    )


@lru_cache
def get_resource_locks() -> ResourceLocks:
    return ResourceLocks()


def get_clock() -> Callable[[], datetime]:
    return lambda: datetime.now(settings.tz)


def get_event_emitter() -> EventEmitter:
    return emit_event


# ── Per request ──────────────────────────────────────────────────────────


def get_operating_calendar(
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> OperatingCalendar:
    return OperatingCalendar(db, settings.tz, cutoff_hour=settings.cutoff_hour, now=clock)


def get_busy_source(client: CalendarClient = Depends(get_calendar_client)) -> BusyIntervalSource:
    return BusyIntervalSource(client, timeout=settings.calendar_timeout)


def get_duration_policy(estimator: TravelEstimator = Depends(get_travel_estimator)) -> DurationPolicy:
    return DurationPolicy(estimator)


def get_slot_allocator(
    config: AllocatorConfig = Depends(get_allocator_config),
    calendar: OperatingCalendar = Depends(get_operating_calendar),
    busy_source: BusyIntervalSource = Depends(get_busy_source),
    policy: DurationPolicy = Depends(get_duration_policy),
    estimator: TravelEstimator = Depends(get_travel_estimator),
) -> SlotAllocator:
    return SlotAllocator(
        config=config,
        calendar=calendar,
        busy_source=busy_source,
        policy=policy,
        estimator=estimator,
        tz=settings.tz,
        max_range_days=settings.max_range_days,
    )


def get_booking_committer(
    db: Session = Depends(get_db),
    client: CalendarClient = Depends(get_calendar_client),
    busy_source: BusyIntervalSource = Depends(get_busy_source),
    calendar: OperatingCalendar = Depends(get_operating_calendar),
    estimator: TravelEstimator = Depends(get_travel_estimator),
    config: AllocatorConfig = Depends(get_allocator_config),
    locks: ResourceLocks = Depends(get_resource_locks),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> BookingCommitter:
    return BookingCommitter(
        db=db,
        calendar_client=client,
        busy_source=busy_source,
        operating_calendar=calendar,
        estimator=estimator,
        config=config,
        tz=settings.tz,
        locks=locks,
        office_address=settings.office_address,
        now=clock,
    )
