from pydantic import BaseModel, Field
from datetime import date
from typing import Optional, List
from uuid import UUID

from app.schemas.token import TokenTemplate

class ScheduleCreate(BaseModel):
    hospital_id: UUID
    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str
    tokens: List[TokenTemplate] = []

class ScheduleResponse(BaseModel):
    id: UUID
    doctor_id: UUID
    hospital_id: UUID
    day_of_week: int
    start_time: str
    end_time: str
    tokens: List[TokenTemplate] = []
    is_active: bool

    class Config:
        from_attributes = True

class ScheduleConfirm(BaseModel):
    token_date: date

class PendingConfirmations(BaseModel):
    token_date: date
    schedules: List[ScheduleResponse]

class TokenAddResponse(BaseModel):
    success: bool
    message: Optional[str] = None
