# backend/app/schemas/holidays.py

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel


class HolidayCreate(BaseModel):
    holiday_date: date
    description: Optional[str] = None
    is_active: bool = True

    model_config = {"from_attributes": True}


class HolidayUpdate(BaseModel):
    holiday_date: Optional[date] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None

    model_config = {"from_attributes": True}


class HolidayRead(BaseModel):
    id: int
    holiday_date: date
    description: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
