# backend/app/services/operating_calendar.py
"""
Bookable-date policy on top of the operating_hours / holidays tables.

A date is bookable when it is after tomorrow, or tomorrow before the cutoff
hour, is not an active holiday, and has an active hours row for its weekday.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Callable
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import ExternalServiceDegraded
from ..models.tables import Holidays, OperatingHours

logger = logging.getLogger(__name__)


def weekday_sunday_first(d: date) -> int:
    """0 = Sunday … 6 = Saturday, from the civil date."""
    return d.isoweekday() % 7


class NotBookableReason(str, Enum):
    PAST = "past"
    SAME_DAY = "same_day"
    CUTOFF = "cutoff"
    HOLIDAY = "holiday"
    CLOSED = "closed"


@dataclass(frozen=True)
class NotBookable:
    date: date
    reason: NotBookableReason


@dataclass(frozen=True)
class OperatingWindow:
    weekday: int
    open_time: time
    close_time: time
    is_active: bool = True

    @property
    def open_minutes(self) -> int:
        return self.open_time.hour * 60 + self.open_time.minute

    @property
    def close_minutes(self) -> int:
        return self.close_time.hour * 60 + self.close_time.minute


class OperatingCalendar:
    def __init__(
        self,
        db: Session,
        tz: ZoneInfo,
        cutoff_hour: int = 17,
        now: Callable[[], datetime] | None = None,
    ):
        self.db = db
        self.tz = tz
        self.cutoff_hour = cutoff_hour
        self._now = now or (lambda: datetime.now(self.tz))
        self._hours: dict[int, OperatingWindow] | None = None

    def now(self) -> datetime:
        return self._now().astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()

    def window_for(self, day: date) -> OperatingWindow | NotBookable:
        now = self.now()
        today = now.date()

        if day < today:
            return NotBookable(day, NotBookableReason.PAST)
        if day == today:
            return NotBookable(day, NotBookableReason.SAME_DAY)
        if day == today + timedelta(days=1) and now.time() >= time(self.cutoff_hour):
            return NotBookable(day, NotBookableReason.CUTOFF)
        if self.is_holiday(day):
            return NotBookable(day, NotBookableReason.HOLIDAY)

        window = self.hours_for(day)
        if window is None:
            return NotBookable(day, NotBookableReason.CLOSED)
        return window

    def hours_for(self, day: date) -> OperatingWindow | None:
        """Active hours for the date's weekday, ignoring the date policy."""
        return self._load_hours().get(weekday_sunday_first(day))

    def is_holiday(self, day: date) -> bool:
        try:
            row = (
                self.db.query(Holidays.id)
                .filter(Holidays.holiday_date == day, Holidays.is_active.is_(True))
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Holiday lookup failed for {day}: {e}")
            raise ExternalServiceDegraded("Operating calendar is unavailable") from e
        return row is not None

    def _load_hours(self) -> dict[int, OperatingWindow]:
        if self._hours is not None:
            return self._hours
        try:
            rows = self.db.query(OperatingHours).filter(OperatingHours.is_active.is_(True)).all()
        except SQLAlchemyError as e:
            logger.error(f"Operating hours lookup failed: {e}")
            raise ExternalServiceDegraded("Operating calendar is unavailable") from e

        self._hours = {
            row.day_of_week: OperatingWindow(
                weekday=row.day_of_week,
                open_time=row.open_time,
                close_time=row.close_time,
            )
            for row in rows
        }
        return self._hours
