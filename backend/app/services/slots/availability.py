# backend/app/services/slots/availability.py
"""
Slot allocation: which appointment starts can be offered on a date.

Takes into account:
- Bookable-date policy and operating window (OperatingCalendar)
- Travel buffer before and after the appointment (DurationQuote)
- Busy intervals per staff calendar, travel wings included
- Travel time from / to the nearest neighbouring event
- Optional traffic-aware re-quote per candidate

Every listing operation goes through `_iter_slots`, so dates, slots and
time buckets are computed by the same rules.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import AsyncIterator
from zoneinfo import ZoneInfo

from ...errors import InvalidRequest
from ..calendar import BusyInterval, BusyIntervalSource
from ..duration import DurationPolicy, DurationQuote, DurationRequest
from ..operating_calendar import NotBookable, OperatingCalendar
from ..travel import TravelEstimator
from .calculator import Candidate, iter_candidates
from .config import AllocatorConfig, local_datetime, local_day_bounds_utc, local_to_utc, minutes_to_time_str

logger = logging.getLogger(__name__)

RECALC_THRESHOLD_MINUTES = 30
GAP_FALLBACK_MINUTES = 30


@dataclass(frozen=True)
class Slot:
    date: date
    start_minutes: int
    end_minutes: int
    resource_id: str
    is_primary: bool

    @property
    def start_time(self) -> str:
        return minutes_to_time_str(self.start_minutes)

    @property
    def end_time(self) -> str:
        return minutes_to_time_str(self.end_minutes)


class SlotAllocator:
    def __init__(
        self,
        config: AllocatorConfig,
        calendar: OperatingCalendar,
        busy_source: BusyIntervalSource,
        policy: DurationPolicy,
        estimator: TravelEstimator | None,
        tz: ZoneInfo,
        max_range_days: int = 62,
    ):
        self.config = config
        self.calendar = calendar
        self.busy_source = busy_source
        self.policy = policy
        self.estimator = estimator
        self.tz = tz
        self.max_range_days = max_range_days

    # ── Public API ───────────────────────────────────────────────────────

    async def list_slots(
        self,
        day: date,
        request: DurationRequest,
        quote: DurationQuote | None = None,
    ) -> list[Slot]:
        quote = quote or await self.policy.quote_request(request)
        return [slot async for slot in self._iter_slots(day, request, quote)]

    async def has_any_slot(
        self,
        day: date,
        request: DurationRequest,
        quote: DurationQuote | None = None,
    ) -> bool:
        quote = quote or await self.policy.quote_request(request)
        async for _ in self._iter_slots(day, request, quote):
            return True
        return False

    async def available_dates(self, start: date, end: date, request: DurationRequest) -> list[date]:
        quote = await self.policy.quote_request(request)
        return [day for day in self.date_range(start, end) if await self.has_any_slot(day, request, quote)]

    async def slots_across_dates(self, start: date, end: date, request: DurationRequest) -> dict[date, list[Slot]]:
        quote = await self.policy.quote_request(request)
        result: dict[date, list[Slot]] = {}
        for day in self.date_range(start, end):
            slots = await self.list_slots(day, request, quote)
            if slots:
                result[day] = slots
        return result

    def date_range(self, start: date, end: date) -> list[date]:
        if end < start:
            raise InvalidRequest("end_date must not be before start_date")
        days = (end - start).days + 1
        if days > self.max_range_days:
            raise InvalidRequest(f"Date range is limited to {self.max_range_days} days")
        return [start + timedelta(days=i) for i in range(days)]

    # ── Core loop ────────────────────────────────────────────────────────

    async def _iter_slots(
        self,
        day: date,
        request: DurationRequest,
        quote: DurationQuote,
    ) -> AsyncIterator[Slot]:
        window = self.calendar.window_for(day)
        if isinstance(window, NotBookable):
            logger.debug(f"{day} not bookable: {window.reason.value}")
            return

        resources = self.config.ordered_resources
        if not resources:
            return

        buffer = quote.travel_buffer_minutes if self.config.use_travel_buffer else 0
        open_minutes, close_minutes = window.open_minutes, window.close_minutes

        window_start, window_end = local_day_bounds_utc(day, self.tz)
        busy = await self.busy_source.busy_intervals(resources, window_start, window_end)
        if all(intervals is None for intervals in busy.values()):
            logger.warning(f"No staff calendar readable for {day}, offering no slots")
            return

        for candidate in iter_candidates(
            open_minutes,
            close_minutes,
            quote.appointment_minutes,
            buffer,
            self.config.slot_step_minutes,
        ):
            candidate = await self._recalculate(day, candidate, request, quote)
            if candidate is None or not candidate.fits(open_minutes, close_minutes):
                continue

            resource_id = await self._first_free_resource(day, candidate, request, busy)
            if resource_id is None:
                continue

            yield Slot(
                date=day,
                start_minutes=candidate.start,
                end_minutes=candidate.end,
                resource_id=resource_id,
                is_primary=resource_id == self.config.primary_resource_id,
            )

    async def _recalculate(
        self,
        day: date,
        candidate: Candidate,
        request: DurationRequest,
        quote: DurationQuote,
    ) -> Candidate | None:
        """Re-quote at the candidate's own start; only the end moves."""
        if not (
            self.config.use_traffic_aware_recalc
            and self.config.use_travel_buffer
            and request.address
            and request.square_footage not in (None, "")
        ):
            return candidate

        start_at = local_datetime(day, candidate.start, self.tz)
        requote = await self.policy.quote_request(request, booking_time=start_at)
        if abs(requote.total_minutes - quote.total_minutes) < RECALC_THRESHOLD_MINUTES:
            return candidate

        new_end = candidate.start + requote.total_minutes - 2 * candidate.buffer
        logger.info(
            f"Duration for {day} {minutes_to_time_str(candidate.start)} re-quoted "
            f"{quote.total_minutes} → {requote.total_minutes} min due to traffic"
        )
        return Candidate(start=candidate.start, end=new_end, buffer=candidate.buffer)

    async def _first_free_resource(
        self,
        day: date,
        candidate: Candidate,
        request: DurationRequest,
        busy: dict[str, list[BusyInterval] | None],
    ) -> str | None:
        full_start = local_to_utc(day, candidate.full_start, self.tz)
        full_end = local_to_utc(day, candidate.full_end, self.tz)

        for resource_id in self.config.ordered_resources:
            intervals = busy.get(resource_id)
            if intervals is None:
                continue
            if any(i.overlaps(full_start, full_end) for i in intervals):
                continue
            if request.address and not await self._has_travel_gap(day, candidate, request.address, intervals):
                continue
            return resource_id
        return None

    # ── Adjacent-event gap ───────────────────────────────────────────────

    async def _has_travel_gap(
        self,
        day: date,
        candidate: Candidate,
        address: str,
        intervals: list[BusyInterval],
    ) -> bool:
        """
        Enough time to drive from the previous event and to the next one.

        Events without a location, or at the office, are skipped.
        """
        start_utc = local_to_utc(day, candidate.start, self.tz)
        end_utc = local_to_utc(day, candidate.end, self.tz)

        prior = max((i for i in intervals if i.end_utc <= start_utc), key=lambda i: i.end_utc, default=None)
        if prior is not None and self._needs_gap_check(prior):
            basis = start_utc if self.config.adjacent_gap_basis == "candidate" else prior.end_utc
            needed = await self._gap_minutes(address, basis, origin=prior.location)
            if (start_utc - prior.end_utc).total_seconds() / 60 < needed:
                logger.debug(f"Too little travel time from {prior.subject!r} before {candidate.start}")
                return False

        following = min((i for i in intervals if i.start_utc >= end_utc), key=lambda i: i.start_utc, default=None)
        if following is not None and self._needs_gap_check(following):
            basis = end_utc if self.config.adjacent_gap_basis == "candidate" else following.start_utc
            needed = await self._gap_minutes(following.location, basis, origin=address)
            if (following.start_utc - end_utc).total_seconds() / 60 < needed:
                logger.debug(f"Too little travel time to {following.subject!r} after {candidate.end}")
                return False

        return True

    def _needs_gap_check(self, interval: BusyInterval) -> bool:
        if not interval.location:
            return False
        return not (self.config.office_marker and self.config.office_marker in interval.location)

    async def _gap_minutes(self, address: str, arrival_time: datetime, origin: str) -> int:
        if self.estimator is None:
            return GAP_FALLBACK_MINUTES
        try:
            return await self.estimator.buffer_minutes(address, arrival_time, origin=origin)
        except Exception as e:
            logger.error(f"Gap travel lookup failed ({origin!r} → {address!r}): {e}")
            return GAP_FALLBACK_MINUTES
