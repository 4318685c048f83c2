# backend/app/services/calendar/payloads.py
"""
Calendar event formatting for a booking: the client appointment and the two
private travel blocks around it.
"""

from dataclasses import dataclass
from datetime import datetime
from html import escape

from .base import CalendarEventPayload

DEFAULT_SERVICE_NAME = "Photography Session"
# Subject marker of bookings written as one event including travel
LEGACY_TRAVEL_MARKER = "+ Travel (both ways)"


@dataclass(frozen=True)
class BookingDetails:
    customer_name: str
    customer_email: str
    property_address: str
    customer_phone: str | None = None
    service_type: str | None = None
    notes: str | None = None

    @property
    def service_name(self) -> str:
        return self.service_type or DEFAULT_SERVICE_NAME


def _lines(*pairs: tuple[str, str | None]) -> str:
    return "\n".join(
        f"<p><strong>{label}:</strong> {escape(value)}</p>"
        for label, value in pairs
        if value
    )


def appointment_payload(details: BookingDetails, start_utc: datetime, end_utc: datetime) -> CalendarEventPayload:
    body = _lines(
        ("Client", details.customer_name),
        ("Email", details.customer_email),
        ("Phone", details.customer_phone),
        ("Service", details.service_name),
        ("Location", details.property_address),
        ("Notes", details.notes),
    )
    return CalendarEventPayload(
        subject=f"{details.service_name} - {details.customer_name}",
        start_utc=start_utc,
        end_utc=end_utc,
        location=details.property_address,
        body_html=body,
        attendees=[details.customer_email],
    )


def travel_payload(
    details: BookingDetails,
    start_utc: datetime,
    end_utc: datetime,
    minutes: int,
    direction: str,
    office_address: str,
) -> CalendarEventPayload:
    """Travel block, private to staff. `direction` is "to" or "from"."""
    label = direction.upper()
    if direction == "to":
        location = f"From {office_address} to {details.property_address}"
    else:
        location = f"From {details.property_address} to {office_address}"

    body = (
        f"<p><strong>TRAVEL TIME {label} APPOINTMENT</strong></p>\n"
        + _lines(
            ("Duration", f"{minutes} minutes"),
            ("Client", details.customer_name),
            ("Service", details.service_name),
            ("Location", details.property_address),
            ("Notes", details.notes),
        )
    )
    return CalendarEventPayload(
        subject=f"TRAVEL {label}: {details.customer_name} ({minutes} min)",
        start_utc=start_utc,
        end_utc=end_utc,
        location=location,
        body_html=body,
        private=True,
    )
