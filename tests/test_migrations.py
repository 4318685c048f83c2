from datetime import time

from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from app.models.tables import OperatingHours
from migrate import apply_migrations


def test_schema_matches_models(tmp_path):
    db_path = str(tmp_path / "data" / "booking.db")

    assert apply_migrations(db_path) == ["001_schema.sql"]
    assert apply_migrations(db_path) == []

    engine = create_engine(f"sqlite:///{db_path}")
    with Session(engine) as session:
        hours = {h.day_of_week: h for h in session.query(OperatingHours).all()}
    engine.dispose()

    assert sorted(hours) == list(range(7))
    assert not hours[0].is_active
    assert (hours[1].open_time, hours[1].close_time) == (time(9), time(18))
    assert (hours[6].open_time, hours[6].close_time) == (time(10), time(16))
