# backend/app/services/slots/config.py
"""
Allocator configuration and local-time helpers for slot calculation.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from ...config import settings


@dataclass(frozen=True)
class AllocatorConfig:
    """
    Configuration for the slot allocator.

    Attributes:
        resource_ids: Staff calendars in preference order
        primary_resource_id: Preferred staff member (defaults to the first resource)
        use_travel_buffer: Inflate slots by the travel buffer on both sides
        use_traffic_aware_recalc: Re-quote each candidate at its own start time
        slot_step_minutes: Candidate grid step (15/30/60)
        adjacent_gap_basis: Routing time for the gap check against neighbouring
            events: "candidate" uses the slot start/end, "adjacent" the event time
        office_marker: Event locations containing this are the office
    """
    resource_ids: tuple[str, ...] = field(default_factory=tuple)
    primary_resource_id: str | None = None
    use_travel_buffer: bool = True
    use_traffic_aware_recalc: bool = True
    slot_step_minutes: int = 30  # 15 / 30 / 60
    adjacent_gap_basis: str = "candidate"
    office_marker: str = ""

    def __post_init__(self):
        """Validate configuration."""
        if self.slot_step_minutes not in (15, 30, 60):
            raise ValueError(f"slot_step_minutes must be 15, 30, or 60, got {self.slot_step_minutes}")
        if self.adjacent_gap_basis not in ("candidate", "adjacent"):
            raise ValueError(f"adjacent_gap_basis must be 'candidate' or 'adjacent', got {self.adjacent_gap_basis!r}")
        if self.primary_resource_id is None and self.resource_ids:
            object.__setattr__(self, "primary_resource_id", self.resource_ids[0])

    @property
    def ordered_resources(self) -> list[str]:
        """Primary first, then the rest in configured order."""
        if self.primary_resource_id is None:
            return list(self.resource_ids)
        rest = [r for r in self.resource_ids if r != self.primary_resource_id]
        return [self.primary_resource_id, *rest]


@lru_cache
def get_allocator_config() -> AllocatorConfig:
    """Allocator configuration from settings (singleton)."""
    return AllocatorConfig(
        resource_ids=tuple(settings.staff_calendars),
        primary_resource_id=settings.primary_calendar,
        use_traffic_aware_recalc=settings.traffic_aware_recalc,
        slot_step_minutes=settings.slot_step_minutes,
        adjacent_gap_basis=settings.adjacent_gap_basis,
        office_marker=settings.office_address.split(",")[0].strip(),
    )


# ── Time helpers ─────────────────────────────────────────────────────────


def time_str_to_minutes(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight."""
    hour, minute = value.split(":")[:2]
    return int(hour) * 60 + int(minute)


def minutes_to_time_str(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def time_to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def local_datetime(day: date, minutes: int, tz: ZoneInfo) -> datetime:
    """Aware local datetime for minutes since local midnight."""
    return datetime.combine(day, time(0), tzinfo=tz) + timedelta(minutes=minutes)


def local_to_utc(day: date, minutes: int, tz: ZoneInfo) -> datetime:
    return local_datetime(day, minutes, tz).astimezone(timezone.utc)


def local_day_bounds_utc(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """UTC instants of local midnight and the following midnight."""
    start = datetime.combine(day, time(0), tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time(0), tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
