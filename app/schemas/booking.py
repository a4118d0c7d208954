from pydantic import BaseModel, Field
from datetime import date
from typing import Optional, List
from uuid import UUID

from app.db.models import BookingStatus

class BookingCreate(BaseModel):
    user_id: str
    doctor_id: UUID
    schedule_id: UUID
    token_date: date
    token_number: int = Field(ge=0)
    location: Optional[List[float]] = Field(default=None, min_length=2, max_length=2)  # [lat, lng]

class BookingResponse(BaseModel):
    success: bool
    booking_id: Optional[int] = None

class BookingActionResponse(BaseModel):
    success: bool
    message: Optional[str] = None

class VerifyOtpRequest(BaseModel):
    otp: str

class VisitRequest(BaseModel):
    doctor_id: Optional[UUID] = None

class BookingStatusResponse(BaseModel):
    booking_id: int
    status: BookingStatus
