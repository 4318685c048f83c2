"""Shared test fixtures and helpers."""

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.models.tables import Base, Holidays, OperatingHours
from app.services.booking_committer import BookingCommitter, ResourceLocks
from app.services.calendar import BusyIntervalSource, FakeCalendarClient
from app.services.duration import DurationPolicy
from app.services.operating_calendar import OperatingCalendar
from app.services.slots import AllocatorConfig, SlotAllocator
from app.services.travel import LatLng, MapsError, MemoryTravelCache, TravelEstimator

TZ = ZoneInfo("America/New_York")
OFFICE_ADDRESS = "825 Parkway St Suite 8, Jupiter, FL 33477"
OFFICE = LatLng(26.9342, -80.0942)
PRIMARY = "photographer@studio.test"
SECONDARY = "assistant@studio.test"

# Wednesday 2025-06-04 10:00 local; next Monday is 2025-06-09
NOW = datetime(2025, 6, 4, 10, 0, tzinfo=TZ)
TOMORROW = date(2025, 6, 5)
NEXT_MONDAY = date(2025, 6, 9)


def local_utc(day: date, hour: int, minute: int = 0) -> datetime:
    """UTC instant of a business-local wall-clock time."""
    return datetime.combine(day, time(hour, minute), tzinfo=TZ).astimezone(timezone.utc)


class StubMapsClient:
    """Maps client returning a fixed one-way duration."""

    def __init__(self, seconds: int = 20 * 60):
        self.seconds = seconds
        self.fail = False
        self.failing_addresses: set[str] = set()
        self.geocode_calls: list[str] = []
        self.route_calls: list[tuple] = []

    async def geocode(self, address: str) -> LatLng:
        self.geocode_calls.append(address)
        if self.fail or address in self.failing_addresses:
            raise MapsError(f"geocode failed for {address}")
        return LatLng(27.0, -80.1)

    async def route_seconds(self, origin, destination, departure_time=None) -> int:
        self.route_calls.append((origin, destination, departure_time))
        if self.fail:
            raise MapsError("route failed")
        return self.seconds


class Clock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()

    # Sunday closed, Mon-Fri 09:00-17:00, Saturday 10:00-16:00
    for weekday in range(1, 6):
        session.add(OperatingHours(day_of_week=weekday, open_time=time(9), close_time=time(17), is_active=True))
    session.add(OperatingHours(day_of_week=6, open_time=time(10), close_time=time(16), is_active=True))
    session.add(OperatingHours(day_of_week=0, open_time=time(9), close_time=time(17), is_active=False))
    session.commit()

    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def add_holiday(db):
    def _add(day: date, description: str = "Holiday", is_active: bool = True):
        db.add(Holidays(holiday_date=day, description=description, is_active=is_active))
        db.commit()
    return _add


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def calendar_client():
    return FakeCalendarClient()


@pytest.fixture
def maps_client():
    return StubMapsClient()


@pytest.fixture
def estimator(maps_client):
    return TravelEstimator(maps_client, MemoryTravelCache(), office=OFFICE, timeout=1.0)


@pytest.fixture
def operating_calendar(db, clock):
    return OperatingCalendar(db, TZ, cutoff_hour=17, now=clock)


@pytest.fixture
def busy_source(calendar_client):
    return BusyIntervalSource(calendar_client, timeout=1.0)


@pytest.fixture
def allocator_config():
    return AllocatorConfig(
        resource_ids=(PRIMARY,),
        use_traffic_aware_recalc=False,
        office_marker="825 Parkway St",
    )


@pytest.fixture
def make_allocator(operating_calendar, busy_source, estimator):
    def _make(config: AllocatorConfig) -> SlotAllocator:
        return SlotAllocator(
            config=config,
            calendar=operating_calendar,
            busy_source=busy_source,
            policy=DurationPolicy(estimator),
            estimator=estimator,
            tz=TZ,
        )
    return _make


@pytest.fixture
def allocator(make_allocator, allocator_config):
    return make_allocator(allocator_config)


@pytest.fixture
def committer_config():
    return AllocatorConfig(
        resource_ids=(PRIMARY, SECONDARY),
        office_marker="825 Parkway St",
    )


@pytest.fixture
def committer(db, calendar_client, busy_source, operating_calendar, estimator, committer_config, clock):
    return BookingCommitter(
        db=db,
        calendar_client=calendar_client,
        busy_source=busy_source,
        operating_calendar=operating_calendar,
        estimator=estimator,
        config=committer_config,
        tz=TZ,
        locks=ResourceLocks(),
        office_address=OFFICE_ADDRESS,
        now=clock,
    )
