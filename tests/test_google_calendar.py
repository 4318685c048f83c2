from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from googleapiclient.errors import HttpError

from app.services.calendar import CalendarError, CalendarEventPayload
from app.services.calendar import google
from app.services.calendar.google import GoogleCalendarClient, event_status, parse_event_time

from conftest import NEXT_MONDAY, PRIMARY, TZ, local_utc


def http_error(status: int) -> HttpError:
    return HttpError(SimpleNamespace(status=status, reason="error"), b"{}")


class FakeRequest:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error

    def execute(self):
        if self.error:
            raise self.error
        return self.result


class FakeEvents:
    def __init__(self, pages=(), error=None):
        self.pages = list(pages)
        self.error = error
        self.list_calls = []
        self.inserted = []

    def list(self, **kwargs):
        self.list_calls.append(kwargs)
        return FakeRequest(self.pages.pop(0))

    def get(self, calendarId, eventId):
        return FakeRequest(error=self.error)

    def insert(self, calendarId, body):
        self.inserted.append(body)
        return FakeRequest({"id": "g-1", "htmlLink": "https://calendar.google.com/event?eid=g-1"})

    def delete(self, calendarId, eventId):
        return FakeRequest({}, error=self.error)


@pytest.fixture
def make_client(monkeypatch):
    monkeypatch.setattr(
        google.service_account.Credentials,
        "from_service_account_file",
        staticmethod(lambda *args, **kwargs: object()),
    )

    def _make(events: FakeEvents) -> GoogleCalendarClient:
        client = GoogleCalendarClient("service-account.json", tz=TZ, timeout=1.0)
        client._services[PRIMARY] = SimpleNamespace(events=lambda: events)
        return client
    return _make


class TestParsing:
    def test_utc_timestamp(self):
        assert parse_event_time({"dateTime": "2025-06-09T14:00:00Z"}, TZ) == datetime(2025, 6, 9, 14, tzinfo=timezone.utc)

    def test_offset_timestamp(self):
        assert parse_event_time({"dateTime": "2025-06-09T10:00:00-04:00"}, TZ) == local_utc(NEXT_MONDAY, 10)

    def test_all_day_is_local_midnight(self):
        assert parse_event_time({"date": "2025-06-09"}, TZ) == local_utc(NEXT_MONDAY, 0)

    @pytest.mark.parametrize(
        "event, status",
        [
            ({}, "busy"),
            ({"transparency": "transparent"}, "free"),
            ({"status": "tentative"}, "tentative"),
            ({"eventType": "outOfOffice"}, "outOfOffice"),
        ],
    )
    def test_event_status(self, event, status):
        assert event_status(event) == status


class TestGoogleCalendarClient:
    @pytest.mark.asyncio
    async def test_list_events_follows_pages(self, make_client):
        event = {
            "id": "a",
            "summary": "Shoot",
            "location": "1 Ocean Dr",
            "start": {"dateTime": "2025-06-09T14:00:00Z"},
            "end": {"dateTime": "2025-06-09T15:00:00Z"},
        }
        events = FakeEvents(pages=[
            {"items": [event], "nextPageToken": "p2"},
            {"items": [{**event, "id": "b", "status": "cancelled"}]},
        ])

        intervals = await make_client(events).list_events(
            PRIMARY, local_utc(NEXT_MONDAY, 0), local_utc(NEXT_MONDAY, 23)
        )

        assert [i.event_id for i in intervals] == ["a"]
        assert intervals[0].location == "1 Ocean Dr"
        assert events.list_calls[1]["pageToken"] == "p2"

    @pytest.mark.asyncio
    async def test_create_event_is_private_with_link(self, make_client):
        events = FakeEvents()
        payload = CalendarEventPayload(
            subject="TRAVEL TO: Jane (30 min)",
            start_utc=local_utc(NEXT_MONDAY, 9, 30),
            end_utc=local_utc(NEXT_MONDAY, 10),
            private=True,
        )

        created = await make_client(events).create_event(PRIMARY, payload)

        assert created.event_id == "g-1"
        assert created.link.endswith("g-1")
        assert events.inserted[0]["visibility"] == "private"
        assert events.inserted[0]["transparency"] == "opaque"

    @pytest.mark.asyncio
    async def test_delete_missing_event(self, make_client):
        assert await make_client(FakeEvents(error=http_error(410))).delete_event(PRIMARY, "gone") is False

    @pytest.mark.asyncio
    async def test_get_missing_event(self, make_client):
        assert await make_client(FakeEvents(error=http_error(404))).get_event(PRIMARY, "gone") is None

    @pytest.mark.asyncio
    async def test_delete_server_error(self, make_client):
        with pytest.raises(CalendarError):
            await make_client(FakeEvents(error=http_error(500))).delete_event(PRIMARY, "x")
