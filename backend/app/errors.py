# backend/app/errors.py
"""
Domain errors and their HTTP mapping.

Every error carries an HTTP status and a stable machine-readable code;
handlers registered on the app render them as {"detail": ..., "code": ...}.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class BookingError(Exception):
    status_code: int = 500
    code: str = "booking_error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.__class__.__doc__ or self.code
        super().__init__(self.detail)


class InvalidRequest(BookingError):
    """Invalid request."""
    status_code = 400
    code = "invalid_request"


class MissingFields(InvalidRequest):
    """Missing required fields."""
    code = "missing_fields"

    def __init__(self, fields: list[str]):
        self.fields = fields
        super().__init__(f"Missing required fields: {', '.join(fields)}")


class UnknownResource(InvalidRequest):
    """Unknown resource."""
    code = "unknown_resource"


class OutsideHours(BookingError):
    """Booking time is outside operating hours."""
    status_code = 400
    code = "outside_hours"


class HolidayBooking(BookingError):
    """Cannot book on a holiday."""
    status_code = 400
    code = "holiday"


class Conflict(BookingError):
    """Time slot conflicts with an existing booking."""
    status_code = 409
    code = "conflict"


class SlotNoLongerAvailable(Conflict):
    """Selected time slot is no longer available."""
    code = "slot_no_longer_available"


class BookingNotFound(BookingError):
    """Booking not found."""
    status_code = 404
    code = "booking_not_found"


class ExternalServiceDegraded(BookingError):
    """An upstream service is unavailable."""
    status_code = 503
    code = "external_service_degraded"


class NoResourcesConfigured(ExternalServiceDegraded):
    """No staff calendars are configured."""
    status_code = 500
    code = "no_resources_configured"


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.detail}")
        return JSONResponse(
            {"detail": exc.detail, "code": exc.code},
            status_code=exc.status_code,
        )
