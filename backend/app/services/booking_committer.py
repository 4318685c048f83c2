# backend/app/services/booking_committer.py
"""
Booking commit, reschedule and cancel.

A commit re-validates the chosen slot against fresh busy intervals, writes
three calendar events (travel-to, appointment, travel-from) and persists
the booking. Calendar write failures do not fail the booking: the ids that
were obtained are stored and the booking is marked calendar_sync="degraded".

Lifecycle: none → confirmed → confirmed (rescheduled) | cancelled.
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from ..errors import (
    BookingNotFound,
    HolidayBooking,
    InvalidRequest,
    MissingFields,
    NoResourcesConfigured,
    OutsideHours,
    SlotNoLongerAvailable,
    UnknownResource,
)
from ..models.tables import Bookings
from .calendar import BusyIntervalSource, CalendarClient, CalendarEventPayload
from .calendar.payloads import LEGACY_TRAVEL_MARKER, BookingDetails, appointment_payload, travel_payload
from .operating_calendar import OperatingCalendar
from .slots.config import AllocatorConfig, time_to_minutes
from .travel import TravelEstimator, TravelWindow

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "booking_date",
    "start_time",
    "end_time",
    "customer_name",
    "customer_email",
    "property_address",
)
DUPLICATE_WINDOW = timedelta(seconds=60)

STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"
SYNC_COMPLETE = "complete"
SYNC_DEGRADED = "degraded"


@dataclass
class BookingRequest:
    booking_date: date | None = None
    start_time: time | None = None
    end_time: time | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    property_address: str | None = None
    property_city: str | None = None
    notes: str | None = None
    service_type: str | None = None
    resource_id: str | None = None


@dataclass
class CommitResult:
    booking_id: int
    resource_id: str
    calendar_links: dict[str, str | None] = field(default_factory=dict)
    calendar_sync: str = SYNC_COMPLETE
    duplicate: bool = False


@dataclass
class _EventIds:
    travel_to: str | None = None
    appointment: str | None = None
    travel_from: str | None = None
    links: dict[str, str | None] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return all((self.travel_to, self.appointment, self.travel_from))


class ResourceLocks:
    """One asyncio.Lock per staff calendar, created on first use."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def __call__(self, resource_id: str) -> asyncio.Lock:
        return self._locks[resource_id]


class BookingCommitter:
    def __init__(
        self,
        db: Session,
        calendar_client: CalendarClient,
        busy_source: BusyIntervalSource,
        operating_calendar: OperatingCalendar,
        estimator: TravelEstimator,
        config: AllocatorConfig,
        tz: ZoneInfo,
        locks: ResourceLocks,
        office_address: str,
        now: Callable[[], datetime] | None = None,
    ):
        self.db = db
        self.calendar_client = calendar_client
        self.busy_source = busy_source
        self.operating_calendar = operating_calendar
        self.estimator = estimator
        self.config = config
        self.tz = tz
        self.locks = locks
        self.office_address = office_address
        self._now = now or (lambda: datetime.now(timezone.utc))

    # ── Commit ───────────────────────────────────────────────────────────

    async def commit(self, request: BookingRequest) -> CommitResult:
        self._require_fields(request)
        self._validate_times(request)

        existing = self._find_duplicate(request)
        if existing is not None:
            logger.info(f"Duplicate submission, returning booking {existing.id}")
            return self._result(existing, duplicate=True)

        self._validate_hours(request)
        candidates = self._candidate_resources(request.resource_id)

        start_utc, end_utc = self._appointment_utc(request)
        travel_to, travel_from = await self._travel_windows(request, start_utc, end_utc)

        for resource_id in candidates:
            async with self.locks(resource_id):
                if not await self._is_free(resource_id, request, travel_to.start, travel_from.end):
                    logger.info(f"{resource_id} not free for {request.booking_date} {request.start_time}")
                    continue

                details = self._details(request)
                ids = await self._write_events(resource_id, details, start_utc, end_utc, travel_to, travel_from)
                booking = self._persist(resource_id, request, ids)
                logger.info(
                    f"Booking {booking.id} confirmed for {resource_id} on {request.booking_date} "
                    f"{request.start_time}-{request.end_time} (calendar {booking.calendar_sync})"
                )
                return self._result(booking, links=ids.links)

        raise SlotNoLongerAvailable()

    # ── Reschedule ───────────────────────────────────────────────────────

    async def reschedule(self, booking_id: int, request: BookingRequest) -> CommitResult:
        booking = self._get_booking(booking_id)
        if booking.status == STATUS_CANCELLED:
            raise InvalidRequest("Cancelled bookings cannot be rescheduled")

        merged = self._merge(booking, request)
        self._require_fields(merged)
        self._validate_times(merged)
        self._validate_hours(merged)

        resource_id = merged.resource_id or booking.resource_id
        if resource_id not in self.config.resource_ids:
            raise UnknownResource(f"Unknown resource: {resource_id}")

        start_utc, end_utc = self._appointment_utc(merged)
        travel_to, travel_from = await self._travel_windows(merged, start_utc, end_utc)
        own_events = (booking.appointment_event_id, booking.travel_to_event_id, booking.travel_from_event_id)

        async with self.locks(resource_id):
            if not await self._is_free(
                resource_id, merged, travel_to.start, travel_from.end,
                ignore_event_ids=own_events, ignore_booking_id=booking.id,
            ):
                raise SlotNoLongerAvailable()

            details = self._details(merged)
            if resource_id != booking.resource_id:
                await self._delete_events(booking.resource_id, own_events)
                ids = await self._write_events(resource_id, details, start_utc, end_utc, travel_to, travel_from)
            elif await self._is_legacy(booking):
                logger.info(f"Booking {booking.id} has a legacy combined event, recreating as three events")
                await self._delete_events(resource_id, (booking.appointment_event_id,))
                ids = await self._write_events(resource_id, details, start_utc, end_utc, travel_to, travel_from)
            else:
                ids = await self._update_events(booking, details, start_utc, end_utc, travel_to, travel_from)

            self._apply(booking, merged, resource_id, ids)
            self.db.commit()
            self.db.refresh(booking)

        logger.info(f"Booking {booking.id} rescheduled to {booking.booking_date} {booking.start_time}")
        return self._result(booking, links=ids.links)

    # ── Cancel ───────────────────────────────────────────────────────────

    async def cancel(self, booking_id: int, resource_id: str | None = None) -> Bookings:
        """
        Soft-cancel: delete the booking's calendar events and mark it cancelled.

        Events are always deleted on the booking's own calendar; a
        `resource_id` naming any other calendar is rejected.
        """
        booking = self._get_booking(booking_id)
        if resource_id and resource_id != booking.resource_id:
            raise InvalidRequest(f"Booking {booking.id} belongs to {booking.resource_id}, not {resource_id}")
        if booking.status == STATUS_CANCELLED:
            return booking

        expected = [
            event_id
            for event_id in (booking.travel_to_event_id, booking.appointment_event_id, booking.travel_from_event_id)
            if event_id
        ]
        deleted = await self._delete_events(booking.resource_id, expected, strict=True)

        booking.status = STATUS_CANCELLED
        if not deleted:
            booking.calendar_sync = SYNC_DEGRADED
        booking.updated_at = self._utc_naive()
        self.db.commit()
        self.db.refresh(booking)

        logger.info(f"Booking {booking.id} cancelled")
        return booking

    # ── Validation ───────────────────────────────────────────────────────

    def _require_fields(self, request: BookingRequest) -> None:
        missing = [name for name in REQUIRED_FIELDS if getattr(request, name) in (None, "")]
        if missing:
            raise MissingFields(missing)

    def _validate_times(self, request: BookingRequest) -> None:
        if request.end_time <= request.start_time:
            raise InvalidRequest("end_time must be after start_time")

    def _validate_hours(self, request: BookingRequest) -> None:
        window = self.operating_calendar.hours_for(request.booking_date)
        if window is None:
            raise OutsideHours("Business is closed on this day")
        start = time_to_minutes(request.start_time)
        end = time_to_minutes(request.end_time)
        if start < window.open_minutes or end > window.close_minutes:
            raise OutsideHours()
        if self.operating_calendar.is_holiday(request.booking_date):
            raise HolidayBooking()

    def _candidate_resources(self, resource_id: str | None) -> list[str]:
        if not self.config.resource_ids:
            raise NoResourcesConfigured()
        if resource_id:
            if resource_id not in self.config.resource_ids:
                raise UnknownResource(f"Unknown resource: {resource_id}")
            return [resource_id]
        return self.config.ordered_resources

    def _find_duplicate(self, request: BookingRequest) -> Bookings | None:
        since = self._utc_naive() - DUPLICATE_WINDOW
        return (
            self.db.query(Bookings)
            .filter(
                Bookings.booking_date == request.booking_date,
                Bookings.start_time == request.start_time,
                Bookings.end_time == request.end_time,
                Bookings.customer_name == request.customer_name,
                Bookings.customer_email == request.customer_email,
                Bookings.status != STATUS_CANCELLED,
                Bookings.created_at >= since,
            )
            .order_by(Bookings.id.desc())
            .first()
        )

    async def _is_free(
        self,
        resource_id: str,
        request: BookingRequest,
        full_start: datetime,
        full_end: datetime,
        ignore_event_ids=(),
        ignore_booking_id: int | None = None,
    ) -> bool:
        """
        Fresh availability check for the travel-inflated span.

        Calendar intervals are re-fetched (an unreadable calendar counts as
        busy), then stored bookings are checked for events that never
        reached the calendar.
        """
        busy = await self.busy_source.busy_intervals(
            [resource_id], full_start, full_end, ignore_event_ids=ignore_event_ids
        )
        intervals = busy.get(resource_id)
        if intervals is None:
            return False
        if any(i.overlaps(full_start, full_end) for i in intervals):
            return False

        query = self.db.query(Bookings).filter(
            Bookings.resource_id == resource_id,
            Bookings.booking_date == request.booking_date,
            Bookings.status != STATUS_CANCELLED,
        )
        if ignore_booking_id is not None:
            query = query.filter(Bookings.id != ignore_booking_id)
        for other in query.all():
            # stored rows are compared on their travel-inflated spans too
            other_start_utc, other_end_utc = self._appointment_utc(other)
            other_to, other_from = await self._travel_windows(other, other_start_utc, other_end_utc)
            if other_to.start < full_end and full_start < other_from.end:
                logger.info(f"{resource_id} blocked by stored booking {other.id}")
                return False
        return True

    # ── Calendar writes ──────────────────────────────────────────────────

    async def _write_events(
        self,
        resource_id: str,
        details: BookingDetails,
        start_utc: datetime,
        end_utc: datetime,
        travel_to: TravelWindow,
        travel_from: TravelWindow,
    ) -> _EventIds:
        """Create travel-to, appointment, travel-from in order; stop at the first failure."""
        ids = _EventIds()
        steps = (
            ("travel_to", travel_payload(details, travel_to.start, travel_to.end, travel_to.minutes, "to", self.office_address)),
            ("appointment", appointment_payload(details, start_utc, end_utc)),
            ("travel_from", travel_payload(details, travel_from.start, travel_from.end, travel_from.minutes, "from", self.office_address)),
        )
        for name, payload in steps:
            try:
                event = await self.calendar_client.create_event(resource_id, payload)
            except Exception as e:
                logger.error(f"Calendar write {name} failed for {resource_id}: {e!r}")
                break
            setattr(ids, name, event.event_id)
            ids.links[name] = event.link
        return ids

    async def _update_events(
        self,
        booking: Bookings,
        details: BookingDetails,
        start_utc: datetime,
        end_utc: datetime,
        travel_to: TravelWindow,
        travel_from: TravelWindow,
    ) -> _EventIds:
        """Update the three events in place, creating any that are missing."""
        ids = _EventIds()
        steps = (
            ("travel_to", booking.travel_to_event_id,
             travel_payload(details, travel_to.start, travel_to.end, travel_to.minutes, "to", self.office_address)),
            ("appointment", booking.appointment_event_id, appointment_payload(details, start_utc, end_utc)),
            ("travel_from", booking.travel_from_event_id,
             travel_payload(details, travel_from.start, travel_from.end, travel_from.minutes, "from", self.office_address)),
        )
        for name, event_id, payload in steps:
            try:
                if event_id:
                    event = await self.calendar_client.update_event(booking.resource_id, event_id, payload)
                else:
                    event = await self.calendar_client.create_event(booking.resource_id, payload)
            except Exception as e:
                # keep the old id; the event is stale and the booking degraded
                logger.error(f"Calendar update {name} failed for booking {booking.id}: {e!r}")
                setattr(ids, name, event_id)
                continue
            setattr(ids, name, event.event_id)
            ids.links[name] = event.link
        return ids

    async def _delete_events(self, resource_id: str, event_ids, strict: bool = False) -> bool:
        """
        Delete events. False when any delete failed; with `strict`, also when
        an event was already gone from the calendar.
        """
        ok = True
        for event_id in event_ids:
            if not event_id:
                continue
            try:
                deleted = await self.calendar_client.delete_event(resource_id, event_id)
            except Exception as e:
                logger.error(f"Calendar delete {event_id} failed for {resource_id}: {e!r}")
                ok = False
                continue
            if not deleted and strict:
                logger.warning(f"Event {event_id} was not on {resource_id}'s calendar")
                ok = False
        return ok

    async def _is_legacy(self, booking: Bookings) -> bool:
        if not booking.appointment_event_id or booking.travel_to_event_id or booking.travel_from_event_id:
            return False
        try:
            event = await self.calendar_client.get_event(booking.resource_id, booking.appointment_event_id)
        except Exception as e:
            logger.error(f"Could not read event {booking.appointment_event_id}: {e!r}")
            return False
        return event is not None and LEGACY_TRAVEL_MARKER in event.subject

    # ── Persistence ──────────────────────────────────────────────────────

    def _persist(self, resource_id: str, request: BookingRequest, ids: _EventIds) -> Bookings:
        now = self._utc_naive()
        booking = Bookings(
            booking_date=request.booking_date,
            start_time=request.start_time,
            end_time=request.end_time,
            customer_name=request.customer_name,
            customer_email=request.customer_email,
            customer_phone=request.customer_phone,
            property_address=request.property_address,
            property_city=request.property_city or "",
            notes=request.notes,
            service_type=request.service_type,
            status=STATUS_CONFIRMED,
            resource_id=resource_id,
            appointment_event_id=ids.appointment,
            travel_to_event_id=ids.travel_to,
            travel_from_event_id=ids.travel_from,
            calendar_link=ids.links.get("appointment"),
            calendar_sync=SYNC_COMPLETE if ids.complete else SYNC_DEGRADED,
            created_at=now,
            updated_at=now,
        )
        self.db.add(booking)
        self.db.commit()
        self.db.refresh(booking)
        return booking

    def _apply(self, booking: Bookings, request: BookingRequest, resource_id: str, ids: _EventIds) -> None:
        for name in (
            "booking_date", "start_time", "end_time", "customer_name", "customer_email",
            "customer_phone", "property_address", "notes", "service_type",
        ):
            setattr(booking, name, getattr(request, name))
        booking.property_city = request.property_city or ""
        booking.resource_id = resource_id
        booking.appointment_event_id = ids.appointment
        booking.travel_to_event_id = ids.travel_to
        booking.travel_from_event_id = ids.travel_from
        booking.calendar_link = ids.links.get("appointment", booking.calendar_link)
        booking.calendar_sync = SYNC_COMPLETE if ids.complete and len(ids.links) == 3 else SYNC_DEGRADED
        booking.updated_at = self._utc_naive()

    # ── Helpers ──────────────────────────────────────────────────────────

    def _get_booking(self, booking_id: int) -> Bookings:
        booking = self.db.query(Bookings).filter(Bookings.id == booking_id).first()
        if booking is None:
            raise BookingNotFound(f"Booking {booking_id} not found")
        return booking

    def _merge(self, booking: Bookings, request: BookingRequest) -> BookingRequest:
        current = BookingRequest(
            booking_date=booking.booking_date,
            start_time=booking.start_time,
            end_time=booking.end_time,
            customer_name=booking.customer_name,
            customer_email=booking.customer_email,
            customer_phone=booking.customer_phone,
            property_address=booking.property_address,
            property_city=booking.property_city,
            notes=booking.notes,
            service_type=booking.service_type,
            resource_id=booking.resource_id,
        )
        changes = {k: v for k, v in vars(request).items() if v is not None}
        return replace(current, **changes)

    def _appointment_utc(self, request: BookingRequest) -> tuple[datetime, datetime]:
        start = datetime.combine(request.booking_date, request.start_time, tzinfo=self.tz)
        end = datetime.combine(request.booking_date, request.end_time, tzinfo=self.tz)
        return start.astimezone(timezone.utc), end.astimezone(timezone.utc)

    async def _travel_windows(self, booking, start_utc: datetime, end_utc: datetime) -> tuple[TravelWindow, TravelWindow]:
        """Travel-to and travel-from blocks for a request or a stored booking."""
        address = booking.property_address
        if booking.property_city:
            address = f"{address}, {booking.property_city}"
        travel_to = await self.estimator.travel_event_window(address, start_utc, "to")
        travel_from = await self.estimator.travel_event_window(address, end_utc, "from")
        return travel_to, travel_from

    def _details(self, request: BookingRequest) -> BookingDetails:
        return BookingDetails(
            customer_name=request.customer_name,
            customer_email=request.customer_email,
            property_address=request.property_address,
            customer_phone=request.customer_phone,
            service_type=request.service_type,
            notes=request.notes,
        )

    def _utc_naive(self) -> datetime:
        return self._now().astimezone(timezone.utc).replace(tzinfo=None)

    def _result(self, booking: Bookings, links: dict | None = None, duplicate: bool = False) -> CommitResult:
        if links is None:
            links = {"appointment": booking.calendar_link} if booking.calendar_link else {}
        return CommitResult(
            booking_id=booking.id,
            resource_id=booking.resource_id,
            calendar_links=links,
            calendar_sync=booking.calendar_sync,
            duplicate=duplicate,
        )
