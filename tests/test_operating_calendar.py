"""Tests for OperatingCalendar bookable-date policy."""

from datetime import date, datetime, time, timezone

import pytest
from sqlalchemy.exc import OperationalError

from app.errors import ExternalServiceDegraded
from app.services.operating_calendar import (
    NotBookable,
    NotBookableReason,
    OperatingCalendar,
    OperatingWindow,
    weekday_sunday_first,
)

from conftest import NEXT_MONDAY, NOW, TOMORROW, TZ


class FailingSession:
    def query(self, *args):
        raise OperationalError("SELECT", {}, Exception("database is locked"))


def test_weekday_is_sunday_first():
    assert weekday_sunday_first(date(2025, 6, 8)) == 0  # Sunday
    assert weekday_sunday_first(NEXT_MONDAY) == 1
    assert weekday_sunday_first(date(2025, 6, 14)) == 6  # Saturday


class TestWindowFor:
    def test_open_weekday(self, operating_calendar):
        window = operating_calendar.window_for(NEXT_MONDAY)

        assert isinstance(window, OperatingWindow)
        assert (window.open_minutes, window.close_minutes) == (9 * 60, 17 * 60)

    def test_past_date(self, operating_calendar):
        result = operating_calendar.window_for(date(2025, 6, 2))
        assert result == NotBookable(date(2025, 6, 2), NotBookableReason.PAST)

    def test_same_day_is_never_bookable(self, operating_calendar):
        result = operating_calendar.window_for(NOW.date())
        assert result.reason is NotBookableReason.SAME_DAY

    def test_tomorrow_before_cutoff(self, operating_calendar):
        assert isinstance(operating_calendar.window_for(TOMORROW), OperatingWindow)

    @pytest.mark.parametrize("hour, minute", [(17, 0), (17, 1), (23, 59)])
    def test_tomorrow_at_or_after_cutoff(self, operating_calendar, clock, hour, minute):
        clock.now = NOW.replace(hour=hour, minute=minute)
        assert operating_calendar.window_for(TOMORROW).reason is NotBookableReason.CUTOFF

    def test_cutoff_uses_business_timezone(self, db):
        # 20:30 UTC is 16:30 in New York (EDT)
        now = datetime(2025, 6, 4, 20, 30, tzinfo=timezone.utc)
        calendar = OperatingCalendar(db, TZ, now=lambda: now)
        assert isinstance(calendar.window_for(TOMORROW), OperatingWindow)

    def test_cutoff_only_applies_to_tomorrow(self, operating_calendar, clock):
        clock.now = NOW.replace(hour=18)
        assert isinstance(operating_calendar.window_for(date(2025, 6, 6)), OperatingWindow)

    def test_holiday(self, operating_calendar, add_holiday):
        add_holiday(NEXT_MONDAY, "Staff training")
        assert operating_calendar.window_for(NEXT_MONDAY).reason is NotBookableReason.HOLIDAY
        assert operating_calendar.is_holiday(NEXT_MONDAY)

    def test_inactive_holiday_is_ignored(self, operating_calendar, add_holiday):
        add_holiday(NEXT_MONDAY, "Cancelled closure", is_active=False)
        assert not operating_calendar.is_holiday(NEXT_MONDAY)
        assert isinstance(operating_calendar.window_for(NEXT_MONDAY), OperatingWindow)

    def test_inactive_weekday_is_closed(self, operating_calendar):
        assert operating_calendar.window_for(date(2025, 6, 8)).reason is NotBookableReason.CLOSED

    def test_saturday_hours(self, operating_calendar):
        window = operating_calendar.window_for(date(2025, 6, 14))
        assert (window.open_time, window.close_time) == (time(10), time(16))

    def test_database_errors_are_degraded(self, clock):
        calendar = OperatingCalendar(FailingSession(), TZ, now=clock)

        with pytest.raises(ExternalServiceDegraded):
            calendar.is_holiday(NEXT_MONDAY)
        with pytest.raises(ExternalServiceDegraded):
            calendar.window_for(NEXT_MONDAY)
