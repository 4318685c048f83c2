import logging

from fastapi import FastAPI
from redis import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .database import SessionLocal
from .errors import register_error_handlers
from .redis_client import redis_client
from .routers import availability, bookings, calendar, holidays, operating_hours, resources

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Photo Booking API")

register_error_handlers(app)

app.include_router(availability.router)
app.include_router(bookings.router)
app.include_router(operating_hours.router)
app.include_router(holidays.router)
app.include_router(calendar.router)
app.include_router(resources.router)


@app.get("/health")
def health():
    db_ok = True
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check: database unavailable: {e}")
        db_ok = False

    try:
        redis_ok = bool(redis_client.ping())
    except RedisError as e:
        logger.warning(f"Health check: redis unavailable: {e}")
        redis_ok = False

    return {
        "status": "ok" if db_ok else "degraded",
        "database": db_ok,
        "redis": redis_ok,
        "staff_calendars": len(settings.staff_calendars),
    }
