# backend/app/routers/operating_hours.py
# One row per weekday (0 = Sunday). DELETE = hard

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.tables import OperatingHours as DBOperatingHours
from ..schemas.operating_hours import (
    OperatingHoursCreate,
    OperatingHoursRead,
    OperatingHoursUpdate,
)

router = APIRouter(prefix="/operating-hours", tags=["operating_hours"])


@router.get("", response_model=list[OperatingHoursRead])
def list_operating_hours(db: Session = Depends(get_db)):
    return db.query(DBOperatingHours).order_by(DBOperatingHours.day_of_week).all()


@router.get("/{id}", response_model=OperatingHoursRead)
def get_operating_hours(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBOperatingHours, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.post("", response_model=OperatingHoursRead, status_code=status.HTTP_201_CREATED)
def create_operating_hours(
    data: OperatingHoursCreate,
    db: Session = Depends(get_db),
):
    exists = (
        db.query(DBOperatingHours)
        .filter(DBOperatingHours.day_of_week == data.day_of_week)
        .first()
    )
    if exists:
        raise HTTPException(status_code=409, detail="Hours for this day already exist")

    obj = DBOperatingHours(**data.model_dump())
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.put("/{id}", response_model=OperatingHoursRead)
def update_operating_hours(
    id: int,
    data: OperatingHoursUpdate,
    db: Session = Depends(get_db),
):
    obj = db.get(DBOperatingHours, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(obj, field, value)
    if obj.close_time <= obj.open_time:
        raise HTTPException(status_code=400, detail="close_time must be after open_time")

    obj.updated_at = datetime.now(timezone.utc).replace(tzinfo=None)
    db.commit()
    db.refresh(obj)
    return obj


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_operating_hours(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBOperatingHours, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    db.delete(obj)
    db.commit()
