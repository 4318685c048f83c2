# backend/app/routers/bookings.py
# DELETE = soft (status "cancelled"), PATCH = 405

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_booking_committer, get_event_emitter
from ..errors import BookingNotFound
from ..models.tables import Bookings as DBBookings
from ..schemas.bookings import (
    BookingCancelResponse,
    BookingCommitResponse,
    BookingCreate,
    BookingRead,
    BookingUpdate,
)
from ..services.booking_committer import BookingCommitter, BookingRequest
from ..services.events import (
    BOOKING_CANCELLED,
    BOOKING_CONFIRMED,
    BOOKING_RESCHEDULED,
    EventEmitter,
    booking_payload,
)

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _commit_response(result) -> BookingCommitResponse:
    return BookingCommitResponse(
        booking_id=result.booking_id,
        resource_id=result.resource_id,
        calendar_links=result.calendar_links,
        calendar_sync=result.calendar_sync,
    )


@router.get("", response_model=list[BookingRead])
def list_bookings(
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    query = db.query(DBBookings)
    if from_date:
        query = query.filter(DBBookings.booking_date >= from_date)
    if to_date:
        query = query.filter(DBBookings.booking_date <= to_date)
    return query.order_by(DBBookings.booking_date, DBBookings.start_time).all()


@router.get("/{id}", response_model=BookingRead)
def get_booking(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBBookings, id)
    if not obj:
        raise BookingNotFound(f"Booking {id} not found")
    return obj


@router.post("", response_model=BookingCommitResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreate,
    response: Response,
    committer: BookingCommitter = Depends(get_booking_committer),
    emit: EventEmitter = Depends(get_event_emitter),
):
    result = await committer.commit(BookingRequest(**data.model_dump()))
    if result.duplicate:
        response.status_code = status.HTTP_200_OK
        return _commit_response(result)

    booking = committer.db.get(DBBookings, result.booking_id)
    await emit(BOOKING_CONFIRMED, booking_payload(booking, calendar_links=result.calendar_links))
    return _commit_response(result)


@router.put("/{id}", response_model=BookingCommitResponse)
async def reschedule_booking(
    id: int,
    data: BookingUpdate,
    committer: BookingCommitter = Depends(get_booking_committer),
    emit: EventEmitter = Depends(get_event_emitter),
):
    result = await committer.reschedule(id, BookingRequest(**data.model_dump()))

    booking = committer.db.get(DBBookings, result.booking_id)
    await emit(BOOKING_RESCHEDULED, booking_payload(booking, calendar_links=result.calendar_links))
    return _commit_response(result)


@router.delete("/{id}", response_model=BookingCancelResponse)
async def cancel_booking(
    id: int,
    resource_id: Optional[str] = None,
    send_notification: bool = True,
    reason: Optional[str] = None,
    committer: BookingCommitter = Depends(get_booking_committer),
    emit: EventEmitter = Depends(get_event_emitter),
):
    booking = await committer.cancel(id, resource_id)
    await emit(BOOKING_CANCELLED, booking_payload(booking, notify=send_notification, reason=reason))
    return BookingCancelResponse(success=True, booking_id=booking.id, status=booking.status)


@router.patch("/{id}")
def patch_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )
