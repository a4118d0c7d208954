import enum
from sqlmodel import SQLModel, Field
from sqlalchemy import Column
from typing import Optional, List
from datetime import date, datetime
from uuid import UUID, uuid4

from app.core.utils import utcnow

from .types import JSONType

class BookingStatus(str, enum.Enum):
    BOOKED = "BOOKED"
    VISITED = "VISITED"
    CANCELLED = "CANCELLED"

class Booking(SQLModel, table=True):
    __tablename__ = "bookings"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    booking_id: int = Field(unique=True, index=True)
    user_id: str = Field(index=True)
    doctor_id: UUID = Field(foreign_key="doctors.id", index=True)
    schedule_id: UUID = Field(foreign_key="schedules.id", index=True)
    token_table_id: UUID = Field(foreign_key="token_tables.id", index=True)
    token_date: date = Field(index=True)
    token_number: int = Field(index=True)  # 0 for fast-track
    token: dict = Field(sa_column=Column(JSONType, nullable=False))
    start_time: str
    end_time: str
    start_timestamp: datetime  # scheduled start minus the booking window
    end_timestamp: datetime
    booked_at: datetime = Field(default_factory=utcnow)
    visited_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    lat_lng: Optional[List[float]] = Field(default=None, sa_column=Column(JSONType))
    distance_km: Optional[float] = None
    status: BookingStatus = Field(default=BookingStatus.BOOKED, index=True)

class BookingOtp(SQLModel, table=True):
    __tablename__ = "booking_otps"
    booking_id: int = Field(primary_key=True)
    otp: int
    created_at: datetime = Field(default_factory=utcnow)
