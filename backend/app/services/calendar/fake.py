# backend/app/services/calendar/fake.py
"""
In-memory calendar, selected when no Google service account is configured.

Created events become busy intervals immediately, so commits made through
this client are visible to later availability checks.
"""

import logging
from datetime import datetime
from itertools import count

from .base import BusyInterval, CalendarClient, CalendarError, CalendarEvent, CalendarEventPayload

logger = logging.getLogger(__name__)


class FakeCalendarClient(CalendarClient):
    def __init__(self):
        self.events: dict[str, dict[str, BusyInterval]] = {}
        self.failing_resources: set[str] = set()
        # create/update calls whose subject contains one of these raise
        self.failing_subjects: set[str] = set()
        self.calls: list[tuple[str, str, str]] = []
        self._ids = count(1)

    def add_event(
        self,
        resource_id: str,
        start_utc: datetime,
        end_utc: datetime,
        status: str = "busy",
        subject: str = "",
        location: str | None = None,
    ) -> BusyInterval:
        event_id = f"evt-{next(self._ids)}"
        interval = BusyInterval(
            resource_id=resource_id,
            start_utc=start_utc,
            end_utc=end_utc,
            status=status,
            subject=subject,
            location=location,
            event_id=event_id,
        )
        self.events.setdefault(resource_id, {})[event_id] = interval
        return interval

    def _check(self, resource_id: str, subject: str = "") -> None:
        if resource_id in self.failing_resources:
            raise CalendarError(f"Calendar for {resource_id} is unavailable")
        if any(marker in subject for marker in self.failing_subjects):
            raise CalendarError(f"Write rejected for {subject!r}")

    def _link(self, resource_id: str, event_id: str) -> str:
        return f"https://calendar.local/{resource_id}/{event_id}"

    async def list_events(self, resource_id: str, start_utc: datetime, end_utc: datetime) -> list[BusyInterval]:
        self._check(resource_id)
        return sorted(
            (e for e in self.events.get(resource_id, {}).values() if e.overlaps(start_utc, end_utc)),
            key=lambda e: e.start_utc,
        )

    async def get_event(self, resource_id: str, event_id: str) -> BusyInterval | None:
        self._check(resource_id)
        return self.events.get(resource_id, {}).get(event_id)

    async def create_event(self, resource_id: str, payload: CalendarEventPayload) -> CalendarEvent:
        self._check(resource_id, payload.subject)
        interval = self.add_event(
            resource_id,
            payload.start_utc,
            payload.end_utc,
            status=payload.show_as,
            subject=payload.subject,
            location=payload.location,
        )
        self.calls.append(("create", resource_id, interval.event_id))
        logger.info(f"Created in-memory event {interval.event_id} for {resource_id}")
        return CalendarEvent(event_id=interval.event_id, link=self._link(resource_id, interval.event_id))

    async def update_event(self, resource_id: str, event_id: str, payload: CalendarEventPayload) -> CalendarEvent:
        self._check(resource_id, payload.subject)
        events = self.events.get(resource_id, {})
        if event_id not in events:
            raise CalendarError(f"Event {event_id} not found")
        events[event_id] = BusyInterval(
            resource_id=resource_id,
            start_utc=payload.start_utc,
            end_utc=payload.end_utc,
            status=payload.show_as,
            subject=payload.subject,
            location=payload.location,
            event_id=event_id,
        )
        self.calls.append(("update", resource_id, event_id))
        return CalendarEvent(event_id=event_id, link=self._link(resource_id, event_id))

    async def delete_event(self, resource_id: str, event_id: str) -> bool:
        self._check(resource_id)
        self.calls.append(("delete", resource_id, event_id))
        return self.events.get(resource_id, {}).pop(event_id, None) is not None
