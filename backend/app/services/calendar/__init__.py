# backend/app/services/calendar/__init__.py
"""
Staff calendars: busy intervals in, booking events out.
"""

from .base import (
    BLOCKING_STATUSES,
    BusyInterval,
    CalendarClient,
    CalendarError,
    CalendarEvent,
    CalendarEventPayload,
)
from .busy import BusyIntervalSource
from .fake import FakeCalendarClient

__all__ = [
    "BLOCKING_STATUSES",
    "BusyInterval",
    "CalendarClient",
    "CalendarError",
    "CalendarEvent",
    "CalendarEventPayload",
    "BusyIntervalSource",
    "FakeCalendarClient",
]
