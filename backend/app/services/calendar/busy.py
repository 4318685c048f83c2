# backend/app/services/calendar/busy.py
"""
Per-resource busy intervals.

Resources are fetched concurrently. A resource whose calendar cannot be read
maps to None and must be treated as fully unavailable.
"""

import asyncio
import logging
from datetime import datetime
from typing import Iterable

from .base import BusyInterval, CalendarClient

logger = logging.getLogger(__name__)


class BusyIntervalSource:
    def __init__(self, client: CalendarClient, timeout: float = 10.0):
        self.client = client
        self.timeout = timeout

    async def busy_intervals(
        self,
        resource_ids: Iterable[str],
        window_start: datetime,
        window_end: datetime,
        ignore_event_ids: Iterable[str] = (),
    ) -> dict[str, list[BusyInterval] | None]:
        """
        Blocking intervals per resource, sorted by start.

        Args:
            resource_ids: Staff calendars to read
            window_start: Aware start of the window
            window_end: Aware end of the window
            ignore_event_ids: Events to leave out (a booking's own events on reschedule)

        Returns:
            {resource_id: intervals}, None for a resource that failed
        """
        resource_ids = list(resource_ids)
        ignored = {event_id for event_id in ignore_event_ids if event_id}
        results = await asyncio.gather(
            *(self._fetch(r, window_start, window_end, ignored) for r in resource_ids)
        )
        return dict(zip(resource_ids, results))

    async def _fetch(
        self,
        resource_id: str,
        window_start: datetime,
        window_end: datetime,
        ignored: set[str],
    ) -> list[BusyInterval] | None:
        try:
            events = await asyncio.wait_for(
                self.client.list_events(resource_id, window_start, window_end),
                timeout=self.timeout,
            )
        except Exception as e:
            logger.error(f"Busy lookup failed for {resource_id}, treating as unavailable: {e!r}")
            return None

        return sorted(
            (e for e in events if e.blocks and e.event_id not in ignored),
            key=lambda e: e.start_utc,
        )
