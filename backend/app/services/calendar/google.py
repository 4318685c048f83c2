"""
backend/app/services/calendar/google.py

Google Calendar backend for staff calendars.

Uses a service account with domain-wide delegation: every staff calendar is
accessed as its owner (`credentials.with_subject(resource_id)`), calendar id
"primary". The client library is synchronous, so each request runs in a
worker thread under a bounded timeout.
"""

import asyncio
import logging
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .base import BusyInterval, CalendarClient, CalendarError, CalendarEvent, CalendarEventPayload

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]


def parse_event_time(value: dict, tz: ZoneInfo) -> datetime:
    """
    Parse an event start/end object into an aware UTC datetime.

    All-day events carry only a date, taken as local midnight. Timestamps
    without an offset are UTC wall-clock.
    """
    if "dateTime" in value:
        parsed = datetime.fromisoformat(value["dateTime"].replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    day = date.fromisoformat(value["date"])
    return datetime.combine(day, time(0), tzinfo=tz).astimezone(timezone.utc)


def event_status(event: dict) -> str:
    if event.get("eventType") == "outOfOffice":
        return "outOfOffice"
    if event.get("transparency") == "transparent":
        return "free"
    if event.get("status") == "tentative":
        return "tentative"
    return "busy"


def _event_body(payload: CalendarEventPayload) -> dict:
    body = {
        "summary": payload.subject,
        "description": payload.body_html,
        "start": {"dateTime": payload.start_utc.astimezone(timezone.utc).isoformat(), "timeZone": "UTC"},
        "end": {"dateTime": payload.end_utc.astimezone(timezone.utc).isoformat(), "timeZone": "UTC"},
        "transparency": "transparent" if payload.show_as == "free" else "opaque",
        "visibility": "private" if payload.private else "default",
        "reminders": {
            "useDefault": False,
            "overrides": [
                {"method": "popup", "minutes": 30},
            ],
        },
    }
    if payload.show_as == "tentative":
        body["status"] = "tentative"
    if payload.location:
        body["location"] = payload.location
    if payload.attendees:
        body["attendees"] = [{"email": email} for email in payload.attendees]
    return body


class GoogleCalendarClient(CalendarClient):
    def __init__(self, service_account_file: str, tz: ZoneInfo, timeout: float = 10.0):
        self.tz = tz
        self.timeout = timeout
        self._credentials = service_account.Credentials.from_service_account_file(
            service_account_file, scopes=SCOPES
        )
        self._services: dict[str, object] = {}

    def _service(self, resource_id: str):
        """Calendar API client acting as the staff member (cached per resource)."""
        if resource_id not in self._services:
            credentials = self._credentials.with_subject(resource_id)
            self._services[resource_id] = build(
                "calendar", "v3", credentials=credentials, cache_discovery=False
            )
        return self._services[resource_id]

    async def _execute(self, request):
        try:
            return await asyncio.wait_for(asyncio.to_thread(request.execute), timeout=self.timeout)
        except HttpError as e:
            raise CalendarError(f"Google Calendar HTTP {e.resp.status}: {e}") from e
        except asyncio.TimeoutError as e:
            raise CalendarError(f"Google Calendar timed out after {self.timeout}s") from e

    def _to_interval(self, resource_id: str, event: dict) -> BusyInterval:
        return BusyInterval(
            resource_id=resource_id,
            start_utc=parse_event_time(event["start"], self.tz),
            end_utc=parse_event_time(event["end"], self.tz),
            status=event_status(event),
            subject=event.get("summary", ""),
            location=event.get("location"),
            event_id=event.get("id"),
        )

    async def list_events(self, resource_id: str, start_utc: datetime, end_utc: datetime) -> list[BusyInterval]:
        service = self._service(resource_id)
        intervals: list[BusyInterval] = []
        page_token = None

        while True:
            request = service.events().list(
                calendarId="primary",
                timeMin=start_utc.astimezone(timezone.utc).isoformat(),
                timeMax=end_utc.astimezone(timezone.utc).isoformat(),
                singleEvents=True,
                orderBy="startTime",
                pageToken=page_token,
            )
            data = await self._execute(request)

            for event in data.get("items", []):
                if event.get("status") == "cancelled":
                    continue
                intervals.append(self._to_interval(resource_id, event))

            page_token = data.get("nextPageToken")
            if not page_token:
                break

        return intervals

    async def get_event(self, resource_id: str, event_id: str) -> BusyInterval | None:
        request = self._service(resource_id).events().get(calendarId="primary", eventId=event_id)
        try:
            event = await asyncio.wait_for(asyncio.to_thread(request.execute), timeout=self.timeout)
        except HttpError as e:
            if e.resp.status in (404, 410):
                return None
            raise CalendarError(f"Google Calendar HTTP {e.resp.status}: {e}") from e
        except asyncio.TimeoutError as e:
            raise CalendarError(f"Google Calendar timed out after {self.timeout}s") from e
        return self._to_interval(resource_id, event)

    async def create_event(self, resource_id: str, payload: CalendarEventPayload) -> CalendarEvent:
        request = self._service(resource_id).events().insert(
            calendarId="primary",
            body=_event_body(payload),
        )
        created = await self._execute(request)
        logger.info(f"Created Google Calendar event {created.get('id')} for {resource_id}")
        return CalendarEvent(event_id=created["id"], link=created.get("htmlLink"))

    async def update_event(self, resource_id: str, event_id: str, payload: CalendarEventPayload) -> CalendarEvent:
        request = self._service(resource_id).events().update(
            calendarId="primary",
            eventId=event_id,
            body=_event_body(payload),
        )
        updated = await self._execute(request)
        logger.info(f"Updated Google Calendar event {event_id} for {resource_id}")
        return CalendarEvent(event_id=updated.get("id", event_id), link=updated.get("htmlLink"))

    async def delete_event(self, resource_id: str, event_id: str) -> bool:
        request = self._service(resource_id).events().delete(calendarId="primary", eventId=event_id)
        try:
            await asyncio.wait_for(asyncio.to_thread(request.execute), timeout=self.timeout)
        except HttpError as e:
            if e.resp.status in (404, 410):
                logger.warning(f"Google Calendar event {event_id} already deleted")
                return False
            raise CalendarError(f"Google Calendar HTTP {e.resp.status}: {e}") from e
        except asyncio.TimeoutError as e:
            raise CalendarError(f"Google Calendar timed out after {self.timeout}s") from e

        logger.info(f"Deleted Google Calendar event {event_id} for {resource_id}")
        return True
