from sqlalchemy import Boolean, Column, Date, DateTime, Integer, Text, Time, func, text
from sqlalchemy.orm import declarative_base

Base = declarative_base()
metadata = Base.metadata


class OperatingHours(Base):
    __tablename__ = 'operating_hours'

    id = Column(Integer, primary_key=True)
    day_of_week = Column(Integer, nullable=False, unique=True)  # 0 = Sunday … 6 = Saturday
    open_time = Column(Time, nullable=False)
    close_time = Column(Time, nullable=False)
    is_active = Column(Boolean, nullable=False, server_default=text('1'))
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Holidays(Base):
    __tablename__ = 'holidays'

    id = Column(Integer, primary_key=True)
    holiday_date = Column(Date, nullable=False, index=True)
    description = Column(Text)
    is_active = Column(Boolean, nullable=False, server_default=text('1'))
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Bookings(Base):
    __tablename__ = 'bookings'

    id = Column(Integer, primary_key=True)
    booking_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    customer_name = Column(Text, nullable=False)
    customer_email = Column(Text, nullable=False)
    customer_phone = Column(Text)
    property_address = Column(Text, nullable=False)
    property_city = Column(Text, nullable=False, server_default=text("''"))
    notes = Column(Text)
    service_type = Column(Text)
    status = Column(Text, nullable=False, server_default=text("'confirmed'"))
    resource_id = Column(Text, nullable=False)
    appointment_event_id = Column(Text)
    travel_to_event_id = Column(Text)
    travel_from_event_id = Column(Text)
    calendar_link = Column(Text)
    calendar_sync = Column(Text, nullable=False, server_default=text("'complete'"))
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
