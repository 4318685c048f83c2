# backend/app/services/calendar/base.py
"""Provider-agnostic staff calendar interfaces."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

BLOCKING_STATUSES = frozenset({"busy", "tentative", "outOfOffice"})


class CalendarError(Exception):
    pass


@dataclass(frozen=True)
class BusyInterval:
    resource_id: str
    start_utc: datetime
    end_utc: datetime
    status: str = "busy"  # busy | tentative | outOfOffice | free
    subject: str = ""
    location: str | None = None
    event_id: str | None = None

    @property
    def blocks(self) -> bool:
        return self.status in BLOCKING_STATUSES

    def overlaps(self, start_utc: datetime, end_utc: datetime) -> bool:
        """Half-open overlap: touching intervals do not conflict."""
        return start_utc < self.end_utc and self.start_utc < end_utc


@dataclass
class CalendarEventPayload:
    subject: str
    start_utc: datetime
    end_utc: datetime
    location: str | None = None
    body_html: str = ""
    attendees: list[str] = field(default_factory=list)
    show_as: str = "busy"
    private: bool = False


@dataclass(frozen=True)
class CalendarEvent:
    event_id: str
    link: str | None = None


class CalendarClient(ABC):
    @abstractmethod
    async def list_events(self, resource_id: str, start_utc: datetime, end_utc: datetime) -> list[BusyInterval]:
        """All events overlapping the window, blocking or not."""

    @abstractmethod
    async def get_event(self, resource_id: str, event_id: str) -> BusyInterval | None:
        pass

    @abstractmethod
    async def create_event(self, resource_id: str, payload: CalendarEventPayload) -> CalendarEvent:
        pass

    @abstractmethod
    async def update_event(self, resource_id: str, event_id: str, payload: CalendarEventPayload) -> CalendarEvent:
        pass

    @abstractmethod
    async def delete_event(self, resource_id: str, event_id: str) -> bool:
        """Delete an event. Returns False when it was already gone."""
