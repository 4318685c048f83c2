# backend/app/schemas/availability.py
"""
Pydantic schemas for availability API.
"""

from datetime import date
from pydantic import BaseModel


class SlotRead(BaseModel):
    """One offerable appointment (times exclude travel)."""
    start_time: str  # "HH:MM"
    end_time: str
    resource_id: str
    is_primary: bool

    model_config = {"from_attributes": True}


class TimeBucketDate(BaseModel):
    date: date
    end_time: str
    resource_id: str
    is_primary: bool


class TimeBucket(BaseModel):
    """A start time and every date it is available on."""
    time: str
    dates: list[TimeBucketDate]
