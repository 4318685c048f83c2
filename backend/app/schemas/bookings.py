# backend/app/schemas/bookings.py

from datetime import date, datetime, time
from typing import Optional
from pydantic import BaseModel


class BookingCreate(BaseModel):
    # Required fields are optional here so a missing one is reported as
    # MissingFields (400) listing every absent field.
    booking_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None

    property_address: Optional[str] = None
    property_city: Optional[str] = None

    notes: Optional[str] = None
    service_type: Optional[str] = None
    resource_id: Optional[str] = None

    model_config = {"from_attributes": True}


class BookingUpdate(BookingCreate):
    pass


class BookingCommitResponse(BaseModel):
    booking_id: int
    resource_id: str
    calendar_links: dict[str, Optional[str]] = {}
    calendar_sync: str = "complete"


class BookingCancelResponse(BaseModel):
    success: bool
    booking_id: int
    status: str


class BookingRead(BaseModel):
    id: int

    booking_date: date
    start_time: time
    end_time: time

    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None

    property_address: str
    property_city: Optional[str] = None

    notes: Optional[str] = None
    service_type: Optional[str] = None

    status: str
    resource_id: str
    appointment_event_id: Optional[str] = None
    travel_to_event_id: Optional[str] = None
    travel_from_event_id: Optional[str] = None
    calendar_link: Optional[str] = None
    calendar_sync: str

    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
