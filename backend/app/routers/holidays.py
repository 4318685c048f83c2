# backend/app/routers/holidays.py
# DELETE = hard

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.tables import Holidays as DBHolidays
from ..schemas.holidays import (
    HolidayCreate,
    HolidayRead,
    HolidayUpdate,
)

router = APIRouter(prefix="/holidays", tags=["holidays"])


@router.get("", response_model=list[HolidayRead])
def list_holidays(db: Session = Depends(get_db)):
    return db.query(DBHolidays).order_by(DBHolidays.holiday_date).all()


@router.get("/{id}", response_model=HolidayRead)
def get_holiday(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBHolidays, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.post("", response_model=HolidayRead, status_code=status.HTTP_201_CREATED)
def create_holiday(
    data: HolidayCreate,
    db: Session = Depends(get_db),
):
    obj = DBHolidays(**data.model_dump())
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.put("/{id}", response_model=HolidayRead)
def update_holiday(
    id: int,
    data: HolidayUpdate,
    db: Session = Depends(get_db),
):
    obj = db.get(DBHolidays, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(obj, field, value)
    obj.updated_at = datetime.now(timezone.utc).replace(tzinfo=None)
    db.commit()
    db.refresh(obj)
    return obj


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_holiday(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBHolidays, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    db.delete(obj)
    db.commit()
