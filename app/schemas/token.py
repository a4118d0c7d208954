from pydantic import BaseModel
from datetime import date
from typing import Optional, List
from uuid import UUID

from app.db.models import TokenStatus

class TokenTemplate(BaseModel):
    number: int
    type: Optional[str] = None
    time: Optional[str] = None

class TokenResponse(TokenTemplate):
    status: TokenStatus

    class Config:
        from_attributes = True

class TokenTableResponse(BaseModel):
    id: UUID
    doctor_id: UUID
    schedule_id: UUID
    token_date: date
    start_time: str
    end_time: str
    tokens: List[TokenResponse] = []

class BlockTokenRequest(BaseModel):
    doctor_id: UUID
    schedule_id: UUID
    token_date: date
    token_number: int

class BlockTokenResponse(BaseModel):
    success: bool
    message: Optional[str] = None

class ScheduleAvailability(BaseModel):
    token_table_id: UUID
    schedule_id: UUID
    token_date: date
    is_booking_open: bool

class BlockDayResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    closed_tokens: int = 0
    cancelled_bookings: int = 0
    notified_users: int = 0

class ReleaseResponse(BaseModel):
    success: bool
    message: Optional[str] = None
