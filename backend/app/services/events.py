"""
backend/app/services/events.py

Event emitter: pushes booking lifecycle events to Redis for the
out-of-process notifier (confirmation / reschedule / cancellation e-mails).

Queue:
- events:p2p: one event per booking change
"""

import json
import time
import logging
from typing import Awaitable, Callable

from redis import RedisError

from ..redis_client import async_redis_client

logger = logging.getLogger(__name__)

BOOKING_CONFIRMED = "booking_confirmed"
BOOKING_RESCHEDULED = "booking_rescheduled"
BOOKING_CANCELLED = "booking_cancelled"

EventEmitter = Callable[[str, dict], Awaitable[None]]


async def emit_event(event_type: str, payload: dict) -> None:
    """
    Emit a p2p event (instant delivery).

    Pushed to Redis list `events:p2p` for the consumer loop. Failures are
    logged, never raised: the booking is already stored.
    """
    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        await async_redis_client.rpush("events:p2p", json.dumps(event, default=str))
        logger.info(f"Event emitted: {event_type} → events:p2p")
    except RedisError as e:
        logger.error(f"Failed to emit event {event_type}: {e}")


def booking_payload(booking, **extra) -> dict:
    """Notification payload for a booking row."""
    return {
        "booking_id": booking.id,
        "booking_date": booking.booking_date.isoformat(),
        "start_time": booking.start_time.strftime("%H:%M"),
        "end_time": booking.end_time.strftime("%H:%M"),
        "customer_name": booking.customer_name,
        "customer_email": booking.customer_email,
        "property_address": booking.property_address,
        "resource_id": booking.resource_id,
        "calendar_sync": booking.calendar_sync,
        **extra,
    }
