# backend/app/schemas/calendar.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class BusyIntervalRead(BaseModel):
    start_utc: datetime
    end_utc: datetime
    status: str
    subject: str = ""
    location: Optional[str] = None
    event_id: Optional[str] = None

    model_config = {"from_attributes": True}


class ResourceBusy(BaseModel):
    resource_id: str
    available: bool  # False when the calendar could not be read
    intervals: list[BusyIntervalRead] = []


class ResourceRead(BaseModel):
    resource_id: str
    is_primary: bool
