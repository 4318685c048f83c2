# backend/app/schemas/operating_hours.py

from datetime import datetime, time
from typing import Optional
from pydantic import BaseModel, Field, model_validator


class OperatingHoursCreate(BaseModel):
    day_of_week: int = Field(ge=0, le=6, description="0 = Sunday")
    open_time: time
    close_time: time
    is_active: bool = True

    @model_validator(mode="after")
    def check_times(self):
        if self.close_time <= self.open_time:
            raise ValueError("close_time must be after open_time")
        return self

    model_config = {"from_attributes": True}


class OperatingHoursUpdate(BaseModel):
    open_time: Optional[time] = None
    close_time: Optional[time] = None
    is_active: Optional[bool] = None

    model_config = {"from_attributes": True}


class OperatingHoursRead(BaseModel):
    id: int
    day_of_week: int
    open_time: time
    close_time: time
    is_active: bool
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
